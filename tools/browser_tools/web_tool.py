"""HTTP fetch and download commands."""

from __future__ import annotations

import logging
from typing import Any

import requests

from core.errors import CommandExecutionError
from core.session import InterpreterSession
from interpreter.command_types import CommandResult
from tools.base_tool import BaseTool, NativeCommandSpec

logger = logging.getLogger("ir.tools.web")

DEFAULT_TIMEOUT_SECONDS = 30


class WebTool(BaseTool):
    """Fetches URLs with ``requests``; every command needs network permission."""

    def __init__(self, *args: Any, session: InterpreterSession, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.session = session
        self.timeout = float(self.settings.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))

    def command_specs(self) -> list[NativeCommandSpec]:
        return [
            NativeCommandSpec(
                "fetch url ${url} into ${variableName}",
                "Fetch a URL and store the response body in a variable",
                self._fetch,
            ),
            NativeCommandSpec(
                "download ${url} ${filename}",
                "Download a URL into a file",
                self._download,
            ),
        ]

    def metadata(self, template: str, args: dict[str, str]) -> dict[str, Any]:
        metadata: dict[str, Any] = {"requires_network": True}
        if args.get("filename"):
            metadata["target_path"] = str(self.resolve_path(args["filename"]))
        return metadata

    def _get(self, url: str, stream: bool = False) -> requests.Response:
        try:
            response = requests.get(url, timeout=self.timeout, stream=stream)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise CommandExecutionError(f"Request to {url} failed: {exc}") from exc
        return response

    def _fetch(self, args: dict[str, str]) -> CommandResult:
        response = self._get(args["url"])
        self.session.store.set(args["variableName"], response.text)
        logger.info("Fetched %s (%d bytes)", args["url"], len(response.content))
        return CommandResult.ok(f"Fetched {args['url']} into {args['variableName']}")

    def _download(self, args: dict[str, str]) -> CommandResult:
        target = self.resolve_path(args["filename"])
        target.parent.mkdir(parents=True, exist_ok=True)
        with self._get(args["url"], stream=True) as response, target.open("wb") as fh:
            for chunk in response.iter_content(chunk_size=65536):
                fh.write(chunk)
        return CommandResult.ok(f"Downloaded {args['url']} to {target}")
