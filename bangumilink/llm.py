"""
Chat completion client used to extract anime titles from folder names
"""

import json
import logging

import requests

from .base_client import DEFAULT_TIMEOUT, BaseClient

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "arcee-ai/trinity-mini:free"

SINGLE_PROMPT = (
    "请根据这个文件夹名称提取番剧信息，只返回番剧的中文名称，不要其他内容。"
    "如果有多个季度信息（如 Season 2、S2等），请保留季度信息。\n"
    "文件夹名: {folder}"
)

BATCH_PROMPT = (
    "请根据每个文件夹名提取对应番剧中文名称，保留季/季度信息例如 S2 Season 2。"
    "只输出严格 JSON，不要代码块。JSON 顶层包含 items 数组，每一项包含 folder 和 name 字段；"
    "无法判断则 name 为 null。folders:"
)


class LLMClient(BaseClient):
    """Client for an OpenAI-compatible chat completion endpoint"""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        prompt_template: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        super().__init__(url, headers=headers, timeout=timeout)
        self.api_key = api_key
        self.model = model
        self.prompt_template = prompt_template

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _chat(self, prompt: str) -> str | None:
        """Send a single user message and return the reply text"""
        data = self._post(
            "",
            {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Chat completion response has no message content")
            return None
        return content if isinstance(content, str) else None

    @staticmethod
    def strip_code_fences(text: str) -> str:
        """Remove a surrounding ```json ... ``` block if present"""
        text = text.strip()
        if not text.startswith("```"):
            return text
        first_newline = text.find("\n")
        if first_newline == -1:
            return text.strip("`").strip()
        body = text[first_newline + 1:]
        if body.rstrip().endswith("```"):
            body = body.rstrip()[:-3]
        return body.strip()

    @staticmethod
    def parse_batch_content(content: str) -> dict[str, str]:
        """Parse {"items": [{"folder": ..., "name": ...}]}; null names are dropped"""
        data = json.loads(LLMClient.strip_code_fences(content))
        names: dict[str, str] = {}
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            return names

        for item in data["items"]:
            if not isinstance(item, dict):
                continue
            folder = item.get("folder")
            name = item.get("name")
            if isinstance(folder, str) and isinstance(name, str) and name.strip():
                names[folder] = name.strip()
        return names

    def build_prompt(self, folder: str) -> str:
        if self.prompt_template:
            if "{folder}" in self.prompt_template:
                return self.prompt_template.replace("{folder}", folder)
            return f"{self.prompt_template}\n{folder}"
        return SINGLE_PROMPT.format(folder=folder)

    def extract_name(self, folder: str) -> str | None:
        """Ask for the title of a single folder, None on any failure"""
        if not self.configured:
            logger.debug("No API key configured, skipping name extraction")
            return None
        try:
            content = self._chat(self.build_prompt(folder))
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Name extraction failed for {folder}: {e}")
            return None
        if not content:
            return None
        name = self.strip_code_fences(content).strip()
        return name or None

    def extract_names(self, folders: list[str]) -> dict[str, str]:
        """
        Ask for the titles of many folders in one request

        Args:
            folders: Work item keys

        Returns:
            Dict of folder -> title; folders that could not be resolved are
            missing. Any failure yields an empty dict.
        """
        if not folders or not self.configured:
            return {}

        listing = "".join(f" [{idx}] {folder};" for idx, folder in enumerate(folders, 1))
        try:
            content = self._chat(BATCH_PROMPT + listing)
            if not content:
                return {}
            names = self.parse_batch_content(content)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Batch name extraction failed: {e}")
            return {}

        logger.info(f"Extracted {len(names)}/{len(folders)} names")
        return names

    def test_connection(self) -> bool:
        """Send a trivial prompt to check URL, key and model"""
        if not self.configured:
            return False
        try:
            return self._chat("ping") is not None
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False
