"""Allow ``python -m function_insight``."""

from .cli import app

app()
