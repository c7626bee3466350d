"""Response-size budget enforcement for search results.

Hosts cap how large a single tool result may be. ``PayloadTrimmer`` shrinks
an ``AssembledResponse`` in place until its serialised size fits the budget,
applying four stages strictly in order and re-measuring after every change:

1. Cut the prompt-ready text to 90% of its length, repeatedly.
2. Cap every resource text at ``snippet_char_cap``, then at
   ``snippet_char_floor``.
3. Blank resource texts from the last (lowest-scoring) hit backwards. The
   blocks stay so their citations still resolve.
4. Drop whole results from the end, paired with their meta hits, while more
   than the summary remains. Any drop marks the page incomplete.

A stage is entered only if the response is still over budget. A response
already within budget is left untouched, so trimming twice is a no-op.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from dolphin_mcp.config.constants import (
    PROMPT_READY_SHRINK_RATIO,
    RESPONSE_BUDGET_BYTES,
    SNIPPET_CHAR_CAP,
    SNIPPET_CHAR_FLOOR,
)
from dolphin_mcp.core.errors import InternalError

if TYPE_CHECKING:
    from dolphin_mcp.config.models import PayloadConfig
    from dolphin_mcp.search.assembly import AssembledResponse

log = structlog.get_logger(__name__)


def measure_bytes(item: Any) -> int:
    """Return the UTF-8 byte size of *item* serialised as compact JSON.

    Non-ASCII text is kept as-is rather than ``\\u`` escaped, matching what
    goes over the wire.

    Raises:
        InternalError: If *item* is not JSON serialisable.
    """
    try:
        encoded = json.dumps(item, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise InternalError.serialization(str(e)) from e
    return len(encoded.encode("utf-8"))


@dataclass(slots=True)
class TrimReport:
    """What a trim pass did."""

    budget_bytes: int
    initial_bytes: int
    final_bytes: int
    stages: list[int] = field(default_factory=list)
    dropped: int = 0

    @property
    def trimmed(self) -> bool:
        return bool(self.stages)

    @property
    def within_budget(self) -> bool:
        return self.final_bytes <= self.budget_bytes


class PayloadTrimmer:
    """Staged shrink-to-fit for assembled search results."""

    __slots__ = ("budget_bytes", "snippet_char_cap", "snippet_char_floor")

    def __init__(
        self,
        budget_bytes: int = RESPONSE_BUDGET_BYTES,
        snippet_char_cap: int = SNIPPET_CHAR_CAP,
        snippet_char_floor: int = SNIPPET_CHAR_FLOOR,
    ) -> None:
        self.budget_bytes = budget_bytes
        self.snippet_char_cap = snippet_char_cap
        self.snippet_char_floor = snippet_char_floor

    @classmethod
    def from_config(cls, config: PayloadConfig) -> PayloadTrimmer:
        return cls(
            budget_bytes=config.budget_bytes,
            snippet_char_cap=config.snippet_char_cap,
            snippet_char_floor=config.snippet_char_floor,
        )

    def measure(self, response: AssembledResponse) -> int:
        return measure_bytes(response.to_dict())

    def trim(self, response: AssembledResponse) -> TrimReport:
        """Shrink *response* in place until it fits, or nothing is left to cut."""
        size = self.measure(response)
        report = TrimReport(budget_bytes=self.budget_bytes, initial_bytes=size, final_bytes=size)

        stages = (
            self._trim_prompt_ready,
            self._cap_resources,
            self._blank_resources,
            self._drop_results,
        )
        for number, stage in enumerate(stages, start=1):
            if size <= self.budget_bytes:
                break
            report.stages.append(number)
            size = stage(response, size, report)
            log.debug("payload_trim_stage", stage=number, size_bytes=size, budget=self.budget_bytes)

        report.final_bytes = size
        return report

    # -------------------------------------------------------------------------
    # Stages. Each takes the current size and returns the size after it ran.
    # -------------------------------------------------------------------------

    def _trim_prompt_ready(
        self, response: AssembledResponse, size: int, _report: TrimReport
    ) -> int:
        block = response.prompt_ready
        if block is None:
            return size
        while block.text and size > self.budget_bytes:
            block.text = block.text[: int(len(block.text) * PROMPT_READY_SHRINK_RATIO)]
            size = self.measure(response)
        return size

    def _cap_resources(
        self, response: AssembledResponse, size: int, _report: TrimReport
    ) -> int:
        for cap in (self.snippet_char_cap, self.snippet_char_floor):
            for block in response.resources:
                if size <= self.budget_bytes:
                    return size
                if len(block.text) > cap:
                    block.text = block.text[:cap]
                    size = self.measure(response)
        return size

    def _blank_resources(
        self, response: AssembledResponse, size: int, _report: TrimReport
    ) -> int:
        for block in reversed(response.resources):
            if size <= self.budget_bytes:
                break
            if block.text:
                block.text = ""
                size = self.measure(response)
        return size

    def _drop_results(
        self, response: AssembledResponse, size: int, report: TrimReport
    ) -> int:
        while len(response.content_blocks) > 1 and size > self.budget_bytes:
            response.drop_last_result()
            # Flip the flag with the first drop so the final size accounts for it
            response.meta["complete"] = False
            report.dropped += 1
            size = self.measure(response)
        if report.dropped:
            log.warning(
                "payload_trimmed",
                dropped=report.dropped,
                remaining=len(response.resources),
                size_bytes=size,
                budget=self.budget_bytes,
            )
        return size
