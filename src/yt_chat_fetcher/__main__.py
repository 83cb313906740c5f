"""Allow ``python -m yt_chat_fetcher``."""

import sys

from yt_chat_fetcher.cli import main


sys.exit(main())
