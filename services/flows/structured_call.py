"""Single Responses API call with a forced function tool."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict

from openai import AsyncOpenAI

from services.flows.response_parser import extract_usage, parse_function_arguments

LOGGER = logging.getLogger(__name__)


def _message(role: str, text: str) -> Dict[str, Any]:
    return {"type": "message", "role": role, "content": [{"type": "input_text", "text": text}]}


async def call_function_tool(
    client: AsyncOpenAI,
    *,
    model: str,
    system_prompt: str,
    user_prompt: str,
    definition: Dict[str, Any],
) -> Dict[str, Any]:
    """Send one system + user exchange and return the tool arguments.

    Token usage and latency are logged; API and parsing errors are logged
    and re-raised.
    """
    name = definition["name"]
    start = time.time()
    try:
        response = await client.responses.create(
            model=model,
            input=[_message("system", system_prompt), _message("user", user_prompt)],
            tools=[definition],
            tool_choice={"type": "function", "name": name},
        )
    except Exception as exc:
        LOGGER.error("Error during OpenAI Responses API call for %s: %s", name, exc)
        raise

    try:
        arguments = parse_function_arguments(response, tool_name=name)
    except Exception as exc:
        LOGGER.error("Error parsing OpenAI response for %s: %s", name, exc)
        raise

    usage = extract_usage(response)
    LOGGER.info(
        "%s completed in %.3fs (input_tokens=%s, output_tokens=%s)",
        name,
        time.time() - start,
        usage["input_tokens"],
        usage["output_tokens"],
    )
    return arguments
