"""
APPS SCRIPT WRITE COMMAND

Purpose:
- Send {action, payload} to the spreadsheet's write endpoint
- Classify failures so callers know whether to roll back

Failure classes:
- definitive: the write provably did not land (connection refused, server
  rejected the payload with 4xx or an explicit error status)
- uncertain: the write may have landed (timeout, 5xx)

Requirements:
• Timeout protection (API_TIMEOUT)
• Never raises for transport errors - returns a WriteResult
• No automatic retries
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from pendency import config

logger = logging.getLogger(__name__)

ACTION_ADD_NOTE = "addNote"
ACTION_STOP_ALARM = "stopAlarm"
ACTION_DELETE_NOTE = "deleteNote"


@dataclass(frozen=True)
class WriteResult:
    ok: bool
    definitive: bool = False
    message: str = ""
    data: Optional[Dict[str, Any]] = None


class WriteCommand:
    """Posts commands to the Apps Script web app."""

    def __init__(
        self,
        url: str = None,
        timeout: int = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url if url is not None else config.SCRIPT_URL
        self.timeout = timeout or config.API_TIMEOUT
        self.session = session or requests.Session()

    def send(self, action: str, payload: Dict[str, Any]) -> WriteResult:
        """
        Send one command.

        Returns:
            WriteResult(ok=True) on success, otherwise ok=False with
            definitive set according to the failure class.
        """
        if not self.url:
            logger.error("PENDENCY_SCRIPT_URL not configured")
            return WriteResult(ok=False, definitive=True, message="Write endpoint not configured")

        try:
            logger.info(f"Sending command '{action}'")
            # text/plain avoids the CORS preflight the Apps Script endpoint does not answer
            response = self.session.post(
                self.url,
                data=_encode({"action": action, "payload": payload}),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"Command '{action}' timed out; outcome unknown")
            return WriteResult(ok=False, definitive=False, message="Tempo de resposta esgotado")
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Command '{action}' could not reach the server: {str(e)}")
            return WriteResult(ok=False, definitive=True, message="Sem conexão com o servidor")
        except requests.exceptions.RequestException as e:
            logger.warning(f"Command '{action}' failed: {str(e)}")
            return WriteResult(ok=False, definitive=False, message=str(e))

        if response.status_code >= 500:
            logger.warning(f"Command '{action}' got HTTP {response.status_code}; outcome unknown")
            return WriteResult(ok=False, definitive=False, message=f"HTTP {response.status_code}")

        if response.status_code >= 400:
            logger.error(f"Command '{action}' rejected with HTTP {response.status_code}")
            return WriteResult(ok=False, definitive=True, message=f"HTTP {response.status_code}")

        data = _decode(response)
        status = str((data or {}).get("status", "")).lower()
        if status in ("error", "fail", "failed"):
            message = str(data.get("message") or data.get("error") or "Comando rejeitado")
            logger.error(f"Command '{action}' rejected by server: {message}")
            return WriteResult(ok=False, definitive=True, message=message, data=data)

        return WriteResult(ok=True, data=data)


def _encode(body: Dict[str, Any]) -> bytes:
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


def _decode(response: requests.Response) -> Optional[Dict[str, Any]]:
    """Apps Script may answer with JSON, plain text or an HTML redirect page."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
