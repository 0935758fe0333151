"""
Playback engine for the display player.
Sequences one region's playlist items with preloading and cross-fades.

The engine is cooperative: the player calls tick() from its main loop and the
engine decides whether to advance. Drawing is delegated to a Renderer so the
sequencing logic runs unchanged on a headless box or in tests.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from src.common.logger import setup_logger

logger = setup_logger(__name__)


DEFAULT_IMAGE_DURATION = 8.0   # seconds
DEFAULT_WEB_DURATION = 15.0    # seconds
HEADLESS_VIDEO_SECONDS = 30.0  # stand-in video length when nothing decodes
FADE_SECONDS = 0.3
PREFERRED_REGION = 'full'


@dataclass
class PlaybackItem:
    """A playlist item resolved against the manifest's assets."""

    item_id: Any
    type: str                      # image, video or web_url
    uri: str
    sort_order: int = 0
    media_id: Optional[str] = None
    duration: Optional[float] = None

    @property
    def is_video(self) -> bool:
        return self.type == 'video'

    def display_seconds(self) -> Optional[float]:
        """How long to show this item; None means until the video ends."""
        if self.is_video:
            return None
        if self.duration:
            return float(self.duration)
        return DEFAULT_WEB_DURATION if self.type == 'web_url' else DEFAULT_IMAGE_DURATION


class Renderer(ABC):
    """Surface the engine draws on."""

    @abstractmethod
    def preload(self, item: PlaybackItem) -> None:
        """Prepare an item off-screen without changing what is visible."""

    @abstractmethod
    def show(self, item: PlaybackItem) -> None:
        """Display an item immediately."""

    @abstractmethod
    def crossfade(self, current: PlaybackItem, upcoming: PlaybackItem, seconds: float) -> None:
        """Begin fading from current to upcoming."""

    @abstractmethod
    def replay(self, item: PlaybackItem) -> None:
        """Restart the visible item in place."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all content from the screen."""

    def set_video_callback(self, callback: Callable[[Any], None]) -> None:
        """Register the engine's end-of-stream handler (called with the item id)."""
        self.on_video_finished = callback

    def poll(self, now: float) -> None:
        """Called once per engine tick before the engine checks its items."""


class LoggingRenderer(Renderer):
    """
    Renderer for headless runs; records what would be drawn.

    There is no decoder, so a visible video counts as finished after its
    duration_seconds, or video_seconds when the item has none.
    """

    def __init__(self, video_seconds: float = HEADLESS_VIDEO_SECONDS):
        self.video_seconds = video_seconds
        self.visible: Optional[PlaybackItem] = None
        self.preloaded: Optional[PlaybackItem] = None
        self.on_video_finished: Optional[Callable[[Any], None]] = None
        self._video_started_at: Optional[float] = None

    def preload(self, item):
        self.preloaded = item
        logger.debug(f"Preload {item.type} {item.uri}")

    def show(self, item):
        self.visible = item
        self._video_started_at = None
        logger.info(f"Show {item.type} {item.uri}")

    def crossfade(self, current, upcoming, seconds):
        logger.info(f"Fade {current.uri} -> {upcoming.uri} ({seconds}s)")
        self.visible = upcoming
        self._video_started_at = None

    def replay(self, item):
        self._video_started_at = None
        logger.debug(f"Replay {item.uri}")

    def clear(self):
        self.visible = None
        self.preloaded = None
        self._video_started_at = None
        logger.info("Screen cleared")

    def poll(self, now):
        item = self.visible
        if item is None or not item.is_video:
            return

        # The clock starts on the first tick that sees the video
        if self._video_started_at is None:
            self._video_started_at = now
            return

        limit = float(item.duration) if item.duration else self.video_seconds
        if now - self._video_started_at >= limit and self.on_video_finished:
            logger.debug(f"Video {item.uri} ended after {limit}s")
            self.on_video_finished(item.item_id)


def select_region(manifest: Dict[str, Any]) -> Optional[str]:
    """Pick the region to play: 'full' if present, else the first in layout order."""
    region_playlists = manifest.get('region_playlists') or {}
    if PREFERRED_REGION in region_playlists:
        return PREFERRED_REGION

    layout = manifest.get('layout') or {}
    for region in layout.get('regions') or []:
        region_id = str(region.get('id'))
        if region_id in region_playlists:
            return region_id

    return next(iter(region_playlists), None)


def build_items(region_items: List[Dict[str, Any]], assets: List[Dict[str, Any]]) -> List[PlaybackItem]:
    """
    Resolve a region's items to playable entries, ordered by sort_order.

    Items whose media has no URL in the asset list are skipped.
    """
    urls = {a.get('media_id'): a.get('url') for a in assets or []}
    items = []

    for entry in sorted(region_items or [], key=lambda e: (e.get('sort_order') or 0)):
        item_type = entry.get('type')
        media_id = entry.get('media_id')

        if item_type == 'web_url' and entry.get('web_url'):
            uri = entry['web_url']
        else:
            uri = urls.get(media_id) or entry.get('web_url')

        if not uri:
            logger.warning(f"Skipping item {entry.get('playlist_item_id')}: no URL for media {media_id}")
            continue

        items.append(PlaybackItem(
            item_id=entry.get('playlist_item_id'),
            type=item_type,
            uri=uri,
            sort_order=entry.get('sort_order') or 0,
            media_id=media_id,
            duration=entry.get('duration_seconds'),
        ))

    return items


class PlaybackEngine:
    """
    Loops through a list of PlaybackItems.

    Images and web pages advance after their display time, videos when the
    renderer reports end-of-stream or an error. The item after the current
    one is always preloaded. While a cross-fade is in flight the index does
    not move; it commits when the fade completes.
    """

    def __init__(self, renderer: Renderer, fade_seconds: float = FADE_SECONDS):
        self.renderer = renderer
        self.fade_seconds = fade_seconds

        self.items: List[PlaybackItem] = []
        self.version: Optional[str] = None
        self.region_id: Optional[str] = None
        self.index = 0

        self._started_at: Optional[float] = None
        self._video_done = False
        self._pending_index: Optional[int] = None
        self._fade_until: Optional[float] = None

        renderer.set_video_callback(self.on_video_finished)

    @property
    def current_item(self) -> Optional[PlaybackItem]:
        if not self.items:
            return None
        return self.items[self.index]

    @property
    def in_transition(self) -> bool:
        return self._pending_index is not None

    def _next_index(self, index: int) -> int:
        return (index + 1) % len(self.items)

    def load_manifest(self, manifest: Dict[str, Any], now: Optional[float] = None) -> None:
        """
        Start playing a manifest.

        A manifest carrying the version and items already playing keeps the
        current position.
        """
        now = time.monotonic() if now is None else now
        region_id = select_region(manifest)
        region_items = (manifest.get('region_playlists') or {}).get(region_id, [])
        items = build_items(region_items, manifest.get('assets') or [])
        version = (manifest.get('resolved') or {}).get('version')

        if self.items and version == self.version and region_id == self.region_id \
                and [i.item_id for i in items] == [i.item_id for i in self.items]:
            logger.debug(f"Manifest {version} already playing; keeping position")
            # URLs may have been re-signed
            self.items = items
            return

        logger.info(f"Loading {len(items)} item(s) from region {region_id} (version {version})")
        self.load_items(items, now=now)
        self.version = version
        self.region_id = region_id

    def load_items(self, items: List[PlaybackItem], now: Optional[float] = None) -> None:
        """Replace the playlist and show its first item."""
        now = time.monotonic() if now is None else now
        self.items = list(items)
        self.index = 0
        self._pending_index = None
        self._fade_until = None
        self.version = None
        self.region_id = None

        if not self.items:
            self.renderer.clear()
            self._started_at = None
            return

        self._start_current(now, show=True)

    def stop(self) -> None:
        """Clear the screen, e.g. when entering standby."""
        self.items = []
        self.version = None
        self.region_id = None
        self.index = 0
        self._pending_index = None
        self._started_at = None
        self.renderer.clear()

    def _start_current(self, now: float, show: bool = False) -> None:
        if show:
            self.renderer.show(self.current_item)
        self._started_at = now
        self._video_done = False
        if len(self.items) > 1:
            self.renderer.preload(self.items[self._next_index(self.index)])

    def on_video_finished(self, item_id: Any = None) -> None:
        """Renderer callback for end-of-stream."""
        item = self.current_item
        if item is None or not item.is_video or self.in_transition:
            return
        if item_id is not None and item_id != item.item_id:
            return
        self._video_done = True

    def on_video_error(self, item_id: Any = None, error: Optional[str] = None) -> None:
        """Renderer callback for a decode/network failure; treated as a skip."""
        logger.warning(f"Video playback error on {item_id}: {error}")
        self.on_video_finished(item_id)

    def _current_done(self, now: float) -> bool:
        item = self.current_item
        if item.is_video:
            return self._video_done
        return now - self._started_at >= item.display_seconds()

    def tick(self, now: Optional[float] = None) -> None:
        """Advance playback if the current item or fade has run its course."""
        if not self.items:
            return
        now = time.monotonic() if now is None else now
        self.renderer.poll(now)

        if self.in_transition:
            if now >= self._fade_until:
                self.index = self._pending_index
                self._pending_index = None
                self._fade_until = None
                self._start_current(now)
            return

        if not self._current_done(now):
            return

        if len(self.items) == 1:
            # Replay in place; no fade, no blank frame
            self.renderer.replay(self.current_item)
            self._start_current(now)
            return

        self._pending_index = self._next_index(self.index)
        self._fade_until = now + self.fade_seconds
        self.renderer.crossfade(self.current_item, self.items[self._pending_index], self.fade_seconds)

    def get_status(self) -> Dict[str, Any]:
        item = self.current_item
        return {
            'version': self.version,
            'region_id': self.region_id,
            'item_count': len(self.items),
            'index': self.index,
            'current_item_id': item.item_id if item else None,
            'in_transition': self.in_transition,
        }
