"""Multi-round menu extraction with cross-round de-duplication.

Each round asks the model for items it has not returned yet, listing the
names captured so far. Rounds run strictly in sequence because every prompt
depends on the names accepted by the previous rounds.
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

from menu_lens.exceptions import ModelCallError, UnparseableResponseError
from menu_lens.pipeline.collector import coerce_menu_payload
from menu_lens.pipeline.lenient_json import parse_lenient_json
from menu_lens.pipeline.normalize import normalize_items
from menu_lens.pipeline.payload import extract_payload_text
from menu_lens.pipeline.prompts import (
    MENU_BATCH_SCHEMA,
    MENU_BATCH_SCHEMA_NAME,
    SINGLE_PASS_SCHEMA,
    SINGLE_PASS_SCHEMA_NAME,
    build_batch_prompt,
    build_single_pass_prompt,
)
from menu_lens.pipeline.prose import convert_text_to_items
from menu_lens.providers.base import BaseProvider, EncodedImage, ModelRequest
from menu_lens.schema import MenuBatch, MenuExtractionResult, MenuItemCandidate, RoundRecord

logger = logging.getLogger(__name__)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _safe_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return max(0, int(value))
    except ValueError:
        return default


@dataclass(frozen=True)
class BatchConfig:
    max_batches: int = 6
    max_items_per_batch: int = 12
    seen_window: int = 40
    single_pass_first: bool = True

    @classmethod
    def from_env(cls) -> "BatchConfig":
        return cls(
            max_batches=_safe_int(os.getenv("MENU_LENS_MAX_BATCHES"), 6),
            max_items_per_batch=_safe_int(os.getenv("MENU_LENS_MAX_ITEMS_PER_BATCH"), 12),
            seen_window=_safe_int(os.getenv("MENU_LENS_SEEN_WINDOW"), 40),
            single_pass_first=_parse_bool(os.getenv("MENU_LENS_SINGLE_PASS"), True),
        )


@dataclass
class BatchState:
    """Accumulated items and seen names for one extraction call."""

    seen: set[str] = field(default_factory=set)
    items: list[MenuItemCandidate] = field(default_factory=list)
    rounds: list[RoundRecord] = field(default_factory=list)
    last_error: ModelCallError | None = None

    @property
    def seen_names(self) -> list[str]:
        return [item.name for item in self.items]

    def merge(self, candidates: list[MenuItemCandidate]) -> list[MenuItemCandidate]:
        """Append candidates whose lowercase name is new; return those accepted."""
        accepted: list[MenuItemCandidate] = []
        for candidate in candidates:
            if candidate.key in self.seen:
                continue
            self.seen.add(candidate.key)
            self.items.append(candidate)
            accepted.append(candidate)
        return accepted


def parse_menu_payload(content: str) -> MenuBatch:
    """Turn model text into a batch, degrading to prose conversion."""
    try:
        parsed = parse_lenient_json(content)
    except UnparseableResponseError:
        return MenuBatch(items=convert_text_to_items(content), has_more=False, coerced_from_text=True)
    try:
        return coerce_menu_payload(parsed)
    except RecursionError:
        logger.warning("menu payload nested too deeply, falling back to text conversion")
        return MenuBatch(items=convert_text_to_items(content), has_more=False, coerced_from_text=True)


class MenuBatchOrchestrator:
    """Drives extraction rounds against a provider until the menu is exhausted."""

    def __init__(self, provider: BaseProvider, config: BatchConfig | None = None):
        self.provider = provider
        self.config = config or BatchConfig()

    def run(self, image: EncodedImage) -> MenuExtractionResult:
        """Extract, merge and normalize menu items from one image.

        Raises:
            ModelCallError: If the first productive round cannot be completed
                by any request variant.
        """
        state = BatchState()
        partial = False
        rounds_left = self.config.max_batches

        single_pass = self.provider.single_pass_variant()
        if self.config.single_pass_first and single_pass and rounds_left > 0:
            rounds_left -= 1
            request = ModelRequest(
                prompt=build_single_pass_prompt(),
                image=image,
                schema_name=SINGLE_PASS_SCHEMA_NAME,
                schema=SINGLE_PASS_SCHEMA,
            )
            batch = self._attempt(request, single_pass, None, state)
            if batch is not None and batch.items:
                state.merge(batch.items)
                return self._finish(state, partial)

        for batch_index in range(rounds_left):
            request = ModelRequest(
                prompt=build_batch_prompt(
                    batch_index,
                    self.config.max_items_per_batch,
                    state.seen_names,
                    seen_window=self.config.seen_window,
                ),
                image=image,
                schema_name=MENU_BATCH_SCHEMA_NAME,
                schema=MENU_BATCH_SCHEMA,
            )
            try:
                batch = self._request_batch(request, batch_index, state)
            except ModelCallError as e:
                if not state.items:
                    e.rounds = list(state.rounds)
                    raise
                logger.warning(
                    "menu batch %d failed, keeping %d items from earlier rounds",
                    batch_index + 1,
                    len(state.items),
                )
                partial = True
                break

            accepted = state.merge(batch.items)
            if not accepted:
                break
            if not batch.has_more and not batch.truncated:
                break

        return self._finish(state, partial)

    def _request_batch(self, request: ModelRequest, batch_index: int, state: BatchState) -> MenuBatch:
        empty_prose: MenuBatch | None = None
        state.last_error = None
        for variant in self.provider.variants():
            batch = self._attempt(request, variant, batch_index, state)
            if batch is None:
                continue
            if batch.items or not batch.coerced_from_text:
                return batch
            empty_prose = empty_prose or batch

        if empty_prose is not None:
            return empty_prose
        # The last transport error keeps its type (rate limit, bad key).
        if state.last_error is not None:
            raise state.last_error
        raise ModelCallError(f"No request variant returned menu data for batch {batch_index + 1}")

    def _attempt(
        self,
        request: ModelRequest,
        variant: str,
        batch_index: int | None,
        state: BatchState,
    ) -> MenuBatch | None:
        label = "single" if batch_index is None else batch_index + 1
        try:
            response = self.provider.complete(request, variant)
        except ModelCallError as e:
            logger.warning(
                "menu request failed (batch=%s, variant=%s, prompt=%s): %s",
                label,
                variant,
                _prompt_id(request.prompt),
                e,
            )
            state.rounds.append(
                RoundRecord(
                    batch_index=batch_index,
                    variant=variant,
                    prompt=request.prompt,
                    status="error",
                    error=str(e),
                )
            )
            state.last_error = e
            return None

        content = extract_payload_text(response.envelope)
        if not content:
            logger.warning(
                "menu response missing content (batch=%s, variant=%s), trying next variant",
                label,
                variant,
            )
            state.rounds.append(
                RoundRecord(
                    batch_index=batch_index,
                    variant=variant,
                    model=response.model,
                    prompt=request.prompt,
                    status="error",
                    usage=response.usage,
                    error="empty_content",
                )
            )
            return None

        batch = parse_menu_payload(content)
        if response.truncated:
            batch.truncated = True
        state.rounds.append(
            RoundRecord(
                batch_index=batch_index,
                variant=variant,
                model=response.model,
                prompt=request.prompt,
                status="success" if batch.items else "empty",
                item_count=len(batch.items),
                usage=response.usage,
            )
        )
        return batch

    def _finish(self, state: BatchState, partial: bool) -> MenuExtractionResult:
        items = normalize_items(state.items)
        metadata = self.provider.get_extraction_metadata()
        logger.info("menu extraction finished with %d items after %d requests", len(items), len(state.rounds))
        return MenuExtractionResult(
            items=items,
            generated_at=datetime.now(timezone.utc),
            provider=metadata.get("provider", self.provider.name),
            variant=metadata.get("variant"),
            partial=partial,
            rounds=state.rounds,
        )


def _prompt_id(prompt: str) -> str:
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:12]
