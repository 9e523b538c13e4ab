from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import Any, AsyncIterator

import httpx

from promo_catalog.models.catalog import COVER_SLOT, HEADER_LOGO_SLOT, CatalogState, product_slot
from promo_catalog.models.image_state import ImageResolutionState, ImageRole, ImageStage, ResolvedImage
from promo_catalog.services.links import cdn_url, extract_drive_id
from promo_catalog.services.progress import ProgressTracker

"""Resilient image resolution.

Each rendered image owns one finite state machine. The machine is a value
(ImageResolutionState) advanced by the pure function ``transition``; the
async driver ``resolve_slot`` performs the network attempts and feeds the
outcome back as events.

Fixed attempt order (no rewriting proxy, no inline conversion):

    Direct(cors) → Direct(no-cors) → Thumbnail(cors) → Thumbnail(no-cors)
    → Export(cors) → Export(no-cors) → CDN(cors) → CDN(no-cors) → Failed

A reference without an extractable identifier fails right after the Direct
attempts. Every path reaches a terminal state after at most eight attempts.
"""

__all__ = [
    "STRATEGIES",
    "LoadSucceeded",
    "LoadFailed",
    "SourceChanged",
    "Attempt",
    "ImageRequest",
    "FailureCallback",
    "initial_state",
    "strategy_url",
    "transition",
    "ImageSlot",
    "ImageProbe",
    "probe_client",
    "resolve_slot",
    "resolve_images",
    "catalog_image_requests",
    "record_resolutions",
]

logger = logging.getLogger(__name__)

STRATEGIES: tuple[ImageStage, ...] = (
    ImageStage.DIRECT,
    ImageStage.THUMBNAIL,
    ImageStage.EXPORT,
    ImageStage.CDN,
)

DEFAULT_ORIGIN = "https://promo-catalog.local"
USER_AGENT = "PromoCatalog/1.0"


@dataclass(frozen=True)
class LoadSucceeded:
    generation: int


@dataclass(frozen=True)
class LoadFailed:
    generation: int
    stamp: int  # cache-buster token (ms) for the next candidate URL


@dataclass(frozen=True)
class SourceChanged:
    reference: str
    role: ImageRole | None = None


Event = LoadSucceeded | LoadFailed | SourceChanged
FailureCallback = Callable[[dict[str, str]], None]


def initial_state(reference: str | None, role: ImageRole = ImageRole.PRODUCT, generation: int = 0) -> ImageResolutionState:
    original = reference or ""
    candidate = original.strip()
    if not candidate:
        # 参照なし: ネットワーク試行なしで即 Failed
        return ImageResolutionState(
            original_reference=original,
            candidate_url="",
            stage=ImageStage.FAILED,
            terminal=True,
            generation=generation,
            role=role,
        )
    return ImageResolutionState(
        original_reference=original,
        candidate_url=candidate,
        drive_id=extract_drive_id(original),
        generation=generation,
        role=role,
    )


def strategy_url(stage: ImageStage, drive_id: str, stamp: int) -> str:
    if stage is ImageStage.THUMBNAIL:
        return f"https://drive.google.com/thumbnail?id={drive_id}&sz=w1000&t={stamp}"
    if stage is ImageStage.EXPORT:
        return f"https://drive.google.com/uc?export=view&id={drive_id}&t={stamp}"
    if stage is ImageStage.CDN:
        return cdn_url(drive_id)
    raise ValueError(f"no URL construction for stage {stage.value}")


def transition(state: ImageResolutionState, event: Event) -> ImageResolutionState:
    """Advance the machine by one event. Pure: returns a new state (or ``state`` itself)."""
    if isinstance(event, SourceChanged):
        return initial_state(event.reference, event.role or state.role, state.generation + 1)

    # 世代違い (リセット済み) や終端状態へのイベントは無視
    if event.generation != state.generation or state.terminal:
        return state

    if isinstance(event, LoadSucceeded):
        return replace(state, stage=ImageStage.LOADED, terminal=True)

    if state.cors_mode:
        return replace(state, cors_mode=False)

    next_index = state.strategy_index + 1
    if not state.drive_id or next_index >= len(STRATEGIES):
        return replace(state, stage=ImageStage.FAILED, terminal=True)

    stage = STRATEGIES[next_index]
    return replace(
        state,
        stage=stage,
        strategy_index=next_index,
        candidate_url=strategy_url(stage, state.drive_id, event.stamp),
        cors_mode=True,
    )


@dataclass(frozen=True)
class Attempt:
    url: str
    cors_mode: bool
    generation: int


class ImageSlot:
    """Host-side owner of one image's state machine.

    The slot is the only place the state is replaced. ``on_failure`` receives
    ``{"input": <original reference>, "extractedId": <id or "">}`` once per
    source when a non-logo image ends up Failed.
    """

    def __init__(
        self,
        reference: str | None,
        role: ImageRole = ImageRole.PRODUCT,
        on_failure: FailureCallback | None = None,
    ) -> None:
        self._state = initial_state(reference, role)
        self._on_failure = on_failure
        self._reported = False

    @property
    def state(self) -> ImageResolutionState:
        return self._state

    def set_source(self, reference: str | None) -> None:
        """Full reset for a new reference; in-flight results for the old one are discarded."""
        self._state = transition(self._state, SourceChanged(reference or ""))
        self._reported = False

    def attempt(self) -> Attempt | None:
        if self._state.terminal:
            return None
        return Attempt(self._state.candidate_url, self._state.cors_mode, self._state.generation)

    def dispatch(self, event: Event) -> bool:
        """Apply an event; returns True when the state changed."""
        before = self._state
        after = transition(before, event)
        self._state = after
        if after is before:
            return False
        if after.failed and not self._reported:
            self._reported = True
            self._report_failure(after)
        return True

    def _report_failure(self, state: ImageResolutionState) -> None:
        if state.role is ImageRole.LOGO:
            return
        logger.debug(f"image exhausted reference={state.original_reference!r} id={state.drive_id!r}")
        if self._on_failure is not None:
            self._on_failure({"input": state.original_reference, "extractedId": state.drive_id})


Probe = Callable[[str, bool], Awaitable[bool]]


class ImageProbe:
    """Network check for one candidate URL.

    cors mode mirrors an anonymous cross-origin image request: an ``Origin``
    header is sent and the response must carry ``Access-Control-Allow-Origin``
    (the document capture step cannot use the pixels otherwise). no-cors mode
    only requires a successful image response.
    """

    def __init__(self, client: httpx.AsyncClient, origin: str = DEFAULT_ORIGIN) -> None:
        self._client = client
        self._origin = origin

    async def __call__(self, url: str, cors_mode: bool) -> bool:
        headers = {"Origin": self._origin} if cors_mode else {}
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            logger.debug(f"image probe error url={url} cors={cors_mode} err={exc}")
            return False
        if response.status_code >= 400:
            return False
        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("image/"):
            return False
        if cors_mode and not response.headers.get("access-control-allow-origin"):
            return False
        return True


@asynccontextmanager
async def probe_client(timeout: float = 15.0, **kwargs: Any) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        **kwargs,
    ) as client:
        yield client


def _now_stamp() -> int:
    return time.time_ns() // 1_000_000


async def resolve_slot(slot: ImageSlot, probe: Probe) -> ImageResolutionState:
    """Drive one slot until it reaches a terminal state."""
    while True:
        attempt = slot.attempt()
        if attempt is None:
            return slot.state
        ok = await probe(attempt.url, attempt.cors_mode)
        if ok:
            slot.dispatch(LoadSucceeded(attempt.generation))
        else:
            slot.dispatch(LoadFailed(attempt.generation, stamp=_now_stamp()))


@dataclass(frozen=True)
class ImageRequest:
    reference: str
    role: ImageRole = ImageRole.PRODUCT
    sku: str = ""
    slot: str = ""  # CatalogState.images のキー


async def resolve_images(
    requests: list[ImageRequest],
    probe: Probe,
    on_failure: Callable[[dict[str, str], ImageRequest], None] | None = None,
    progress: ProgressTracker | None = None,
) -> list[ImageResolutionState]:
    """Resolve independent images concurrently; results keep request order."""

    def _callback(request: ImageRequest) -> FailureCallback | None:
        if on_failure is None:
            return None
        return lambda info: on_failure(info, request)

    async def _one(request: ImageRequest) -> ImageResolutionState:
        slot = ImageSlot(request.reference, request.role, _callback(request))
        state = await resolve_slot(slot, probe)
        if progress is not None:
            progress.advance(state.loaded)
        return state

    return list(await asyncio.gather(*(_one(r) for r in requests)))


def catalog_image_requests(state: CatalogState) -> list[ImageRequest]:
    """Every image the rendered catalog shows: header logo, cover, product images and logos."""

    def _iter() -> Iterator[ImageRequest]:
        if state.header_logo:
            yield ImageRequest(state.header_logo, ImageRole.LOGO, slot=HEADER_LOGO_SLOT)
        if state.cover:
            yield ImageRequest(state.cover, ImageRole.COVER, slot=COVER_SLOT)
        for p in state.products:
            # 画像参照なしの商品は最初からプレースホルダ表示 (ネットワーク不要)
            if p.image_url:
                yield ImageRequest(p.image_url, ImageRole.PRODUCT, p.sku, product_slot(p.id, ImageRole.PRODUCT))
            if p.logo_url:
                yield ImageRequest(p.logo_url, ImageRole.LOGO, p.sku, product_slot(p.id, ImageRole.LOGO))

    return list(_iter())


def record_resolutions(
    state: CatalogState,
    requests: list[ImageRequest],
    states: list[ImageResolutionState],
) -> None:
    """Store each terminal machine under its slot so the document can render it.

    Products without an image reference get the empty-reference outcome
    (Failed, "No Image") without any request having been made.
    """
    images = {r.slot: ResolvedImage.from_state(s) for r, s in zip(requests, states) if r.slot}
    for p in state.products:
        if not p.image_url:
            images[product_slot(p.id, ImageRole.PRODUCT)] = ResolvedImage.from_state(initial_state(""))
    state.images = images
