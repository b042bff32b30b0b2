"""ASGI entrypoint for the PUFA check API."""

from pufa_check.api.app import create_app
from pufa_check.containers import build_container

app = create_app(build_container())
