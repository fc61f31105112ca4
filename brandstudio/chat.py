"""
chat.py — Streaming brand assistant.

The transcript is an append-only log of sealed turns plus at most one
open model turn. While a reply streams in, the open turn is what
``turns[-1]`` shows; each fragment grows its text. When the stream ends
the open turn is sealed into an immutable ChatTurn. Only a clean finish
seals it as a normal reply; a failed, cancelled or abandoned stream seals
it as an error turn, which is kept out of the model history. Sealed turns
are never rewritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Tuple

from .config import MODEL_NAMES

logger = logging.getLogger(__name__)

USER = "user"
MODEL = "model"

GREETING = (
    "Hello! I am your Brand Assistant. Ask me anything about your brand strategy, "
    "marketing ideas, or design trends."
)
ERROR_MESSAGE = "Sorry, I encountered an error."
INTERRUPTED_MESSAGE = "Reply interrupted."


@dataclass(frozen=True)
class ChatTurn:
    role: str                               # "user" | "model"
    text: str
    is_error: bool = False
    error_message: Optional[str] = None     # user-facing notice on failed replies

    @property
    def display_text(self) -> str:
        if not self.is_error:
            return self.text
        if self.text:
            return f"{self.text}\n\n{self.error_message}"
        return self.error_message or ""


class Transcript:
    """Sealed turns + one optional open turn being streamed into."""

    def __init__(self, greeting: Optional[str] = GREETING) -> None:
        self._sealed: List[ChatTurn] = []
        self._open: Optional[List[str]] = None
        if greeting:
            self._sealed.append(ChatTurn(role=MODEL, text=greeting))

    @property
    def turns(self) -> Tuple[ChatTurn, ...]:
        if self._open is None:
            return tuple(self._sealed)
        return tuple(self._sealed) + (ChatTurn(role=MODEL, text="".join(self._open)),)

    @property
    def last(self) -> Optional[ChatTurn]:
        turns = self.turns
        return turns[-1] if turns else None

    @property
    def is_streaming(self) -> bool:
        return self._open is not None

    def __len__(self) -> int:
        return len(self._sealed) + (1 if self._open is not None else 0)

    def append(self, turn: ChatTurn) -> None:
        if self._open is not None:
            raise RuntimeError("cannot append while a reply is streaming")
        self._sealed.append(turn)

    def open_turn(self) -> None:
        if self._open is not None:
            raise RuntimeError("a reply is already streaming")
        self._open = []

    def extend(self, fragment: str) -> str:
        """Add a fragment to the open turn; returns its text so far."""
        if self._open is None:
            raise RuntimeError("no reply is streaming")
        self._open.append(fragment)
        return "".join(self._open)

    def seal(self, error_message: Optional[str] = None) -> ChatTurn:
        if self._open is None:
            raise RuntimeError("no reply is streaming")
        turn = ChatTurn(
            role=MODEL,
            text="".join(self._open),
            is_error=error_message is not None,
            error_message=error_message,
        )
        self._open = None
        self._sealed.append(turn)
        return turn

    def history(self) -> List[ChatTurn]:
        """
        Sealed turns to send as model context.

        Error turns are dropped, and so are model turns before the first
        user turn (the greeting), since a conversation opens with the user.
        """
        history: List[ChatTurn] = []
        for turn in self._sealed:
            if turn.is_error:
                continue
            if not history and turn.role != USER:
                continue
            history.append(turn)
        return history


class ChatAssistant:
    """Drives conversational turns against the chat model."""

    def __init__(
        self,
        service,
        model: str = MODEL_NAMES["chat"],
        transcript: Optional[Transcript] = None,
    ) -> None:
        self.service = service
        self.model = model
        self.transcript = transcript if transcript is not None else Transcript()
        # token of a reply returned by send() whose iterator has not started yet
        self._pending: Optional[object] = None

    def send(self, message: str) -> AsyncIterator[str]:
        """
        Start a turn and return its reply fragments.

        The user turn and an empty model turn are appended right away;
        the returned iterator must then be consumed to stream the reply
        in. It is not retried: a failed reply is sealed as an error turn
        with whatever text arrived, and the error is re-raised.

        A reply whose iterator was never started is abandoned by the next
        send(): its turn is sealed as interrupted and the old iterator
        yields nothing.
        """
        text = (message or "").strip()
        if not text:
            raise ValueError("chat message must be a non-empty string")
        if self.transcript.is_streaming:
            if self._pending is None:
                raise RuntimeError("a reply is already streaming")
            logger.warning("Abandoning a chat reply that was never read")
            self._pending = None
            self.transcript.seal(error_message=INTERRUPTED_MESSAGE)

        history = self.transcript.history()
        self.transcript.append(ChatTurn(role=USER, text=text))
        self.transcript.open_turn()
        token = object()
        self._pending = token
        return self._stream(token, history, text)

    async def reply(self, message: str) -> ChatTurn:
        """Send a message and wait for the whole reply."""
        async for _ in self.send(message):
            pass
        return self.transcript.turns[-1]

    async def _stream(
        self,
        token: object,
        history: List[ChatTurn],
        message: str,
    ) -> AsyncIterator[str]:
        if self._pending is not token:
            return
        self._pending = None
        try:
            async for fragment in self.service.stream_chat(self.model, history, message):
                if not fragment:
                    continue
                self.transcript.extend(fragment)
                yield fragment
        except Exception as e:
            logger.warning("Chat stream failed: %s", e)
            self.transcript.seal(error_message=ERROR_MESSAGE)
            raise
        else:
            self.transcript.seal()
        finally:
            # cancelled, or the consumer stopped early
            if self.transcript.is_streaming:
                self.transcript.seal(error_message=INTERRUPTED_MESSAGE)
