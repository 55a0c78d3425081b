import json
import logging
from typing import Iterable, List

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "the model returned no content"


class StreamReassembler:
    """
    Accumulates the 'response' fragments of an Ollama NDJSON stream.

    Lines are fed in arrival order. A line that is not a JSON object with a
    string 'response' field is skipped; it never aborts the aggregation.
    """

    def __init__(self, fallback: str = FALLBACK_TEXT):
        self.fallback = fallback
        self._parts: List[str] = []
        self.skipped = 0

    def feed(self, line: str) -> None:
        try:
            fragment = json.loads(line)
        except (ValueError, RecursionError):
            self.skipped += 1
            return
        if isinstance(fragment, dict) and isinstance(fragment.get("response"), str):
            self._parts.append(fragment["response"])
        else:
            self.skipped += 1

    def result(self) -> str:
        answer = "".join(self._parts)
        if not answer.strip():
            return self.fallback
        return answer


def reassemble_lines(lines: Iterable[str], fallback: str = FALLBACK_TEXT) -> str:
    reassembler = StreamReassembler(fallback)
    for line in lines:
        reassembler.feed(line)
    if reassembler.skipped:
        logger.debug(f"Skipped {reassembler.skipped} stream line(s) without a response fragment")
    return reassembler.result()


def reassemble(body: str, fallback: str = FALLBACK_TEXT) -> str:
    return reassemble_lines(body.strip().split("\n"), fallback)
