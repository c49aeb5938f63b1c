from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the document server."""

    def __init__(self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def get_document(self, utility: str, view: str) -> Any:
        return self._get_json(f"/data/{utility}/{view}")

    def list_files(self) -> Dict[str, Any]:
        return self._get_json("/files")

    def health(self) -> Dict[str, Any]:
        return self._get_json("/health")

    def _get_json(self, path: str) -> Any:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        if isinstance(detail, dict):
            message_detail = detail.get("error") or str(detail)
            available = detail.get("available_files")
        else:
            message_detail = detail
            available = None
        message = (
            f"Request failed with status {exc.response.status_code}: "
            f"{message_detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        if available:
            typer.secho(f"Available files: {', '.join(available)}", err=True)
        raise typer.Exit(code=1)
