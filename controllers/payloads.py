"""JSON shapes returned to the chat widget."""

from __future__ import annotations

from typing import Any, Dict

from models.session_models import ChatSession, ConversationTurn
from services.scan.renderer import render_result
from services.scan.scan_session import ScanSession


def turn_payload(turn: ConversationTurn) -> Dict[str, Any]:
    """Serialize a transcript turn, rendering any attached analysis."""
    return {
        "role": turn.role.value,
        "text": turn.text,
        "image_key": turn.image_key,
        "image_url": f"/images/{turn.image_key}/thumbnail" if turn.image_key else None,
        "analysis": render_result(turn.analysis).as_dict() if turn.analysis is not None else None,
        "created_at": turn.created_at,
    }


def scan_payload(scan: ScanSession) -> Dict[str, Any]:
    image = scan.image
    return {
        "state": scan.state.value,
        "camera_open": scan.stream is not None,
        "image": (
            {"filename": image.filename, "encoding": image.encoding, "size": image.size, "source": image.source.value}
            if image is not None
            else None
        ),
    }


def session_payload(session: ChatSession) -> Dict[str, Any]:
    return {
        "session_id": session.session_id,
        "turns": [turn_payload(turn) for turn in session.turns],
        "scan": scan_payload(session.scan),
    }
