"""Pull the text payload out of a provider's content-block list."""
from typing import Any, Sequence

from ..core.exceptions import EmptyResponseError, UnexpectedFormatError


def _block_field(block: Any, name: str) -> Any:
    # SDK objects expose attributes, replayed/serialized payloads are dicts
    if isinstance(block, dict):
        return block.get(name)
    return getattr(block, name, None)


def extract_response_text(content: Sequence[Any]) -> str:
    """
    Return the text of the first content block.

    Raises EmptyResponseError when the list is missing or empty and
    UnexpectedFormatError when the first block is not a text block.
    """
    if not content or not isinstance(content, (list, tuple)):
        raise EmptyResponseError("Empty response from LLM provider")

    first = content[0]
    text = _block_field(first, "text")
    if _block_field(first, "type") != "text" or not isinstance(text, str):
        raise UnexpectedFormatError("Invalid response format from LLM provider")

    return text
