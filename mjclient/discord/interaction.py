"""
Command submission over the Discord interactions REST endpoint.

Every submission carries a nonce allocated from a snowflake generator.
The endpoint answers 204 with an empty body on success; the nonce is the
only handle the caller gets back.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from mjclient.config.schema import MidjourneyConfig
from mjclient.errors import SubmissionRejected, TransportError
from mjclient.midjourney.messages import Finish
from mjclient.utils.helpers import Snowflake


SUCCESS_STATUS = 204

MIDJOURNEY_APPLICATION_ID = "936929561302675456"
IMAGINE_COMMAND_ID = "938956540159881230"
IMAGINE_COMMAND_VERSION = "1166847114203123795"

INTERACTION_APPLICATION_COMMAND = 2
INTERACTION_MESSAGE_COMPONENT = 3
COMMAND_CHAT_INPUT = 1
OPTION_STRING = 3
COMPONENT_BUTTON = 2


class InteractionClient:
    """
    Issues imagine / variation / upscale interactions.

    Responsibilities:
        - Nonce allocation
        - Payload construction
        - Status mapping (204 → nonce, other → SubmissionRejected)
    """

    def __init__(
        self,
        config: MidjourneyConfig,
        http: Optional[httpx.AsyncClient] = None,
        snowflake: Optional[Snowflake] = None,
        session_id: Optional[str] = None,
    ):
        self.config = config
        self.session_id = session_id or uuid.uuid4().hex

        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=config.http_timeout_s)
        self._snowflake = snowflake or Snowflake()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ==========================================================
    # Commands
    # ==========================================================

    def allocate_nonce(self) -> str:
        return str(self._snowflake.next_id())

    async def imagine(self, prompt: str, nonce: Optional[str] = None) -> str:
        nonce = nonce or self.allocate_nonce()
        return await self.submit("imagine", self.imagine_payload(prompt, nonce))

    async def variation(self, finish: Finish, index: int, nonce: Optional[str] = None) -> str:
        nonce = nonce or self.allocate_nonce()
        payload = self.component_payload(finish, f"MJ::JOB::variation::{index}::{finish.job_hash}", nonce)
        return await self.submit("variation", payload)

    async def upscale(self, finish: Finish, index: int, nonce: Optional[str] = None) -> str:
        nonce = nonce or self.allocate_nonce()
        payload = self.component_payload(finish, f"MJ::JOB::upsample::{index}::{finish.job_hash}", nonce)
        return await self.submit("upscale", payload)

    async def submit(self, kind: str, payload: Dict[str, Any]) -> str:
        """
        POST one interaction.

        Returns:
            The payload's nonce.

        Raises:
            SubmissionRejected: status other than 204.
            TransportError: request could not be completed.
        """
        nonce = payload["nonce"]
        headers = {"Authorization": self.config.token}

        try:
            resp = await self._http.post(self.config.interactions_url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Interaction transport failed | kind={} nonce={} err={}", kind, nonce, e)
            raise TransportError(f"Interaction {kind} failed: {e}") from e

        if resp.status_code != SUCCESS_STATUS:
            logger.warning(
                "Interaction rejected | kind={} nonce={} status={}",
                kind,
                nonce,
                resp.status_code,
            )
            raise SubmissionRejected(resp.status_code, resp.text)

        logger.debug("Interaction accepted | kind={} nonce={}", kind, nonce)
        return nonce

    # ==========================================================
    # Payloads
    # ==========================================================

    def imagine_payload(self, prompt: str, nonce: str) -> Dict[str, Any]:
        return {
            "type": INTERACTION_APPLICATION_COMMAND,
            "application_id": MIDJOURNEY_APPLICATION_ID,
            "guild_id": self.config.guild_id,
            "channel_id": self.config.channel_id,
            "session_id": self.session_id,
            "data": {
                "version": IMAGINE_COMMAND_VERSION,
                "id": IMAGINE_COMMAND_ID,
                "name": "imagine",
                "type": COMMAND_CHAT_INPUT,
                "options": [
                    {"type": OPTION_STRING, "name": "prompt", "value": prompt},
                ],
                "application_command": {
                    "id": IMAGINE_COMMAND_ID,
                    "application_id": MIDJOURNEY_APPLICATION_ID,
                    "version": IMAGINE_COMMAND_VERSION,
                    "default_member_permissions": None,
                    "type": COMMAND_CHAT_INPUT,
                    "nsfw": False,
                    "name": "imagine",
                    "description": "Create images with Midjourney",
                    "dm_permission": True,
                    "options": [
                        {
                            "type": OPTION_STRING,
                            "name": "prompt",
                            "description": "The prompt to imagine",
                            "required": True,
                        }
                    ],
                },
                "attachments": [],
            },
            "nonce": nonce,
        }

    def component_payload(self, finish: Finish, custom_id: str, nonce: str) -> Dict[str, Any]:
        return {
            "type": INTERACTION_MESSAGE_COMPONENT,
            "guild_id": self.config.guild_id,
            "channel_id": self.config.channel_id,
            "message_flags": 0,
            "message_id": finish.id,
            "application_id": MIDJOURNEY_APPLICATION_ID,
            "session_id": self.session_id,
            "data": {
                "component_type": COMPONENT_BUTTON,
                "custom_id": custom_id,
            },
            "nonce": nonce,
        }
