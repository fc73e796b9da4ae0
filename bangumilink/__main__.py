"""Allow running as python -m bangumilink"""

from .cli import main

main()
