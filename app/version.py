from __future__ import annotations

import os
from datetime import UTC, datetime
from importlib.metadata import PackageNotFoundError, version

try:
    _installed = version("counselling-booking")
except PackageNotFoundError:  # rodando direto do checkout
    _installed = "0.1.0-dev"

APP_VERSION = os.getenv("APP_VERSION", _installed)
GIT_SHA = os.getenv("GIT_SHA", "local")
BUILD_TIME_UTC = os.getenv("BUILD_TIME_UTC") or datetime.now(UTC).isoformat()
