"""Simple in-memory store for chat widget sessions."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional
from uuid import uuid4

from models.scan_models import AnalysisResult
from models.session_models import ChatSession, ConversationTurn, Role
from services.scan.media_source import StreamHandle
from services.scan.scan_session import ScanSession

GREETING = "Hello! How can I help you with your farm today? Feel free to ask about your tasks or analytics."


class SessionStore:
	"""Manage chat sessions, their transcripts, and their scan state."""

	def __init__(self, release_stream: Optional[Callable[[StreamHandle], None]] = None) -> None:
		self._sessions: Dict[str, ChatSession] = {}
		self._release_stream = release_stream

	def create(self, greet: bool = True) -> ChatSession:
		"""Create a new session, seeded with the assistant greeting."""
		session_id = uuid4().hex
		state = ChatSession(session_id=session_id, scan=ScanSession(release_stream=self._release_stream))
		if greet:
			state.turns.append(ConversationTurn(role=Role.ASSISTANT, text=GREETING))
		self._sessions[session_id] = state
		return state

	def get(self, session_id: str) -> ChatSession:
		"""Return a session or raise KeyError if missing."""
		state = self._sessions.get(session_id)
		if state is None:
			raise KeyError(f"Session {session_id} not found")
		return state

	def add_turn(
		self,
		session_id: str,
		role: Role,
		text: str,
		image_key: Optional[str] = None,
		analysis: Optional[AnalysisResult] = None,
	) -> ConversationTurn:
		"""Append a turn to the session transcript and return it."""
		state = self.get(session_id)
		turn = ConversationTurn(role=role, text=text.strip(), image_key=image_key, analysis=analysis)
		state.turns.append(turn)
		return turn

	def pop_last_turn(self, session_id: str, expected: Optional[ConversationTurn] = None) -> Optional[ConversationTurn]:
		"""Remove the newest turn, only if it is `expected` when given."""
		state = self.get(session_id)
		if not state.turns:
			return None
		if expected is not None and state.turns[-1] is not expected:
			return None
		return state.turns.pop()

	def close(self, session_id: str) -> ChatSession:
		"""Close the widget: release its camera and held image, then forget the session."""
		state = self._sessions.pop(session_id, None)
		if state is None:
			raise KeyError(f"Session {session_id} not found")
		state.closed = True
		state.scan.discard()
		return state

	def transcript_as_text(self, session_id: str, limit: int = 15) -> str:
		"""Return the most recent turns as a text transcript."""
		state = self.get(session_id)
		slice_: Iterable[ConversationTurn] = state.turns[-limit:] if limit else state.turns
		return "\n".join(f"{turn.role.value.upper()}: {turn.text}" for turn in slice_)

	def is_open(self, session_id: str) -> bool:
		return session_id in self._sessions

	def __len__(self) -> int:
		return len(self._sessions)
