"""Session domain models for the farm assistant chat widget."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from models.scan_models import AnalysisResult

if TYPE_CHECKING:
	from services.scan.scan_session import ScanSession


class Role(str, Enum):
	USER = "user"
	ASSISTANT = "assistant"


@dataclass
class ConversationTurn:
	"""A single entry of the chat transcript."""

	role: Role
	text: str
	image_key: Optional[str] = None
	analysis: Optional[AnalysisResult] = None
	created_at: float = field(default_factory=lambda: time.time())


@dataclass
class ChatSession:
	"""In-memory state of one open chat widget."""

	session_id: str
	scan: ScanSession
	turns: List[ConversationTurn] = field(default_factory=list)
	closed: bool = False
