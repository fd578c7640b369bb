"""Slack Web API client used for announcements and approval replies."""

from __future__ import annotations

import typing as typ

from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from .errors import ChatAPIError

if typ.TYPE_CHECKING:
    from gatekeeper.config import SlackConfig


class ChatClient(typ.Protocol):
    """Operations the pipeline needs from the chat platform."""

    async def post_message(
        self, channel: str, text: str, *, thread_ts: str | None = None
    ) -> str:
        """Post ``text`` (markdown) and return the new message's ``ts``."""
        ...

    async def get_display_name(self, user_id: str) -> str:
        """Return the user's real name, falling back to their handle."""
        ...

    async def fetch_message_text(self, channel: str, ts: str) -> str | None:
        """Return the text of the message at ``ts``, if it exists."""
        ...

    async def aclose(self) -> None:
        """Release owned resources."""
        ...


def _slack_error_code(exc: SlackApiError) -> str | None:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    try:
        return response.get("error")
    except AttributeError:
        return None


class SlackChatClient:
    """``ChatClient`` backed by ``slack_sdk``'s ``AsyncWebClient``.

    Parameters
    ----------
    config
        Slack credentials.
    web_client
        Optional pre-built client (tests); otherwise one is created and
        owned by this instance.

    """

    def __init__(
        self,
        config: SlackConfig,
        *,
        web_client: AsyncWebClient | None = None,
    ) -> None:
        """Initialise the client with configuration."""
        self._owns_client = web_client is None
        self._client = web_client or AsyncWebClient(token=config.bot_token)

    async def aclose(self) -> None:
        """Close the underlying HTTP session when owned."""
        if not self._owns_client:
            return
        session = getattr(self._client, "session", None)
        if session is not None and not session.closed:
            await session.close()

    async def post_message(
        self, channel: str, text: str, *, thread_ts: str | None = None
    ) -> str:
        """Post a markdown message, optionally as a thread reply."""
        try:
            response = await self._client.chat_postMessage(
                channel=channel,
                text=text,
                thread_ts=thread_ts,
                mrkdwn=True,
            )
        except SlackApiError as exc:
            raise ChatAPIError.from_slack("chat.postMessage", _slack_error_code(exc)) from exc
        except SlackClientError as exc:
            raise ChatAPIError(str(exc), method="chat.postMessage") from exc

        ts = response.get("ts")
        if not isinstance(ts, str):
            raise ChatAPIError.missing("chat.postMessage", "ts")
        return ts

    async def get_display_name(self, user_id: str) -> str:
        """Resolve ``user_id`` to ``real_name``, then ``name``, then the ID."""
        try:
            response = await self._client.users_info(user=user_id)
        except SlackApiError as exc:
            raise ChatAPIError.from_slack("users.info", _slack_error_code(exc)) from exc
        except SlackClientError as exc:
            raise ChatAPIError(str(exc), method="users.info") from exc

        user = response.get("user")
        if not isinstance(user, dict):
            raise ChatAPIError.missing("users.info", "user")
        return user.get("real_name") or user.get("name") or user_id

    async def fetch_message_text(self, channel: str, ts: str) -> str | None:
        """Return the text of the single message at ``ts`` in ``channel``."""
        try:
            response = await self._client.conversations_history(
                channel=channel,
                latest=ts,
                limit=1,
                inclusive=True,
            )
        except SlackApiError as exc:
            raise ChatAPIError.from_slack(
                "conversations.history", _slack_error_code(exc)
            ) from exc
        except SlackClientError as exc:
            raise ChatAPIError(str(exc), method="conversations.history") from exc

        messages = response.get("messages") or []
        if not messages:
            return None
        text = messages[0].get("text")
        return text if isinstance(text, str) else None
