from __future__ import annotations

import os


class IntegrationDisabledError(RuntimeError):
    pass


class IntegrationMisconfiguredError(RuntimeError):
    pass


def integrations_mode() -> str:
    mode = (os.getenv("INTEGRATIONS_MODE") or "").strip().lower()
    if mode in ("disabled", "sandbox", "live"):
        return mode
    return "disabled"
