"""Запуск командной строки: ``python -m dxlstreaming``."""

import sys

from .cli import main

sys.exit(main())
