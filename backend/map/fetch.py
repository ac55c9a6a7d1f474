"""Fetch orchestration for the map view

Two independent request lines feed the map: the density/geometry query,
keyed by the resolved search parameters, and the listing detail query,
keyed by the selected point. Submitting a new key on a line supersedes the
previous request; a late response for a superseded key is discarded.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from backend.map.draw_state import DrawEvent, DrawStateMachine
from backend.map.geojson_builder import (
    build_density_geojson,
    build_geometry_geojson,
    empty_feature_collection,
    normalize_density_samples,
)
from backend.map.payload import parse_density_payload
from backend.map.search_query import SearchDefaults, resolve_query_params
from backend.utils.cache import InMemoryCache, cache_key

logger = structlog.get_logger(__name__)

class RequestLine:
    """One logical request stream where only the latest key counts"""

    def __init__(self, name: str, executor: ThreadPoolExecutor):
        self.name = name
        self._executor = executor
        self._lock = threading.RLock()
        self._generation = 0
        self._key = None
        self._future: Optional[Future] = None

    @property
    def key(self):
        return self._key

    def submit(
        self,
        key: Any,
        fn: Callable[[], Any],
        on_result: Callable[[Any], None],
        on_error: Optional[Callable[[BaseException], None]] = None
    ) -> Future:
        """
        Run ``fn`` in the background for ``key``

        Returns:
            A future resolving to True once the result (or error) was
            delivered, or False if it was discarded as stale
        """
        delivered = Future()

        with self._lock:
            self._generation += 1
            ticket = self._generation
            self._key = key
            previous = self._future

            # Queued work for an older key is dropped; running work is ignored on arrival
            if previous is not None:
                previous.cancel()

            future = self._executor.submit(fn)
            self._future = future

        future.add_done_callback(partial(self._deliver, ticket, key, on_result, on_error, delivered))
        return delivered

    def cancel(self) -> None:
        """Lose interest in whatever is in flight"""
        with self._lock:
            self._generation += 1
            self._key = None
            if self._future is not None:
                self._future.cancel()
                self._future = None

    def _deliver(self, ticket, key, on_result, on_error, delivered: Future, future: Future) -> None:
        with self._lock:
            if future.cancelled() or ticket != self._generation:
                logger.debug("Discarding stale response", line=self.name, key=key)
                delivered.set_result(False)
                return

            try:
                error = future.exception()
                if error is None:
                    on_result(future.result())
                elif on_error is not None:
                    on_error(error)
                else:
                    raise error
            except Exception as e:
                logger.error("Request line delivery failed", line=self.name, key=key, error=str(e))
                delivered.set_exception(e)
                return

            delivered.set_result(True)

@dataclass
class MapData:
    """Renderable result of one density query"""
    density: Dict[str, Any] = field(default_factory=empty_feature_collection)
    geometry: Dict[str, Any] = field(default_factory=empty_feature_collection)
    total: Optional[int] = None
    query_key: Optional[str] = None

@dataclass
class SelectedPoint:
    """Point picked on the map and the state of its detail fetch"""
    id: str
    coordinates: Tuple[float, float]
    fallback_price: str = ""
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    loading: bool = False

class MapContext:
    """
    Collaborators shared by a map view for the life of the process

    Holds the proxy API client, the worker pool for the request lines and
    the listing detail cache. Create it once, close it on exit (or use it as
    a context manager).
    """

    def __init__(self, api, defaults: SearchDefaults, detail_ttl_seconds: int = 300,
                 max_workers: int = 4):
        self.api = api
        self.defaults = defaults
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="map-fetch")
        self.detail_cache = InMemoryCache(default_ttl_seconds=detail_ttl_seconds)
        self.closed = False

    def __enter__(self) -> "MapContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.executor.shutdown(wait=False, cancel_futures=True)
        close_api = getattr(self.api, "close", None)
        if close_api is not None:
            close_api()
        logger.info("Map context closed")

class FetchOrchestrator:
    """Keeps map data in step with the draw state and the selected point"""

    def __init__(self, context: MapContext, draw: DrawStateMachine,
                 filters: Optional[Dict[str, Any]] = None):
        self.context = context
        self.draw = draw
        self.filters = dict(filters or {})
        self.density_line = RequestLine("density", context.executor)
        self.detail_line = RequestLine("detail", context.executor)

        self.map_data = MapData()
        self.loading = False
        self.error: Optional[str] = None
        self.selected: Optional[SelectedPoint] = None
        self.refresh_count = 0
        self.pending: Optional[Future] = None

        self._data_listeners: List[Callable[[MapData], None]] = []
        self._selection_listeners: List[Callable[[Optional[SelectedPoint]], None]] = []
        self._unsubscribe = draw.subscribe(self._on_draw_event)

    def on_data(self, listener: Callable[[MapData], None]) -> None:
        self._data_listeners.append(listener)

    def on_selection(self, listener: Callable[[Optional[SelectedPoint]], None]) -> None:
        self._selection_listeners.append(listener)

    def detach(self) -> None:
        """Stop following the draw state and drop in-flight interest"""
        self._unsubscribe()
        self.density_line.cancel()
        self.detail_line.cancel()

    # Density line

    def query_params(self) -> Dict[str, Any]:
        return resolve_query_params(self.draw.current_polygon, self.context.defaults, self.filters)

    def refresh(self) -> Future:
        """Request density and geometry for the current search mode"""
        params = self.query_params()
        key = cache_key(params)
        self.loading = True
        self.refresh_count += 1
        logger.info("Refreshing density", key=key, polygon="polygon" in params)

        self.pending = self.density_line.submit(
            key,
            partial(self._load_density, params, key),
            self._apply_map_data,
            self._density_failed,
        )
        return self.pending

    def _load_density(self, params: Dict[str, Any], key: str) -> MapData:
        payload = parse_density_payload(self.context.api.fetch_density(params))
        return MapData(
            density=build_density_geojson(normalize_density_samples(payload.samples)),
            geometry=build_geometry_geojson(payload.geometry),
            total=payload.total,
            query_key=key,
        )

    def _apply_map_data(self, data: MapData) -> None:
        self.map_data = data
        self.loading = False
        self.error = None
        logger.info(
            "Map data updated",
            points=len(data.density["features"]),
            shapes=len(data.geometry["features"]),
            total=data.total
        )
        for listener in list(self._data_listeners):
            listener(data)

    def _density_failed(self, error: BaseException) -> None:
        # Previous map data stays on screen
        self.loading = False
        self.error = str(error)
        logger.error("Density fetch failed", error=str(error), type=type(error).__name__)

    def _on_draw_event(self, event: DrawEvent) -> None:
        self.refresh()

    # Detail line

    def select_point(self, point_id: str, coordinates: Tuple[float, float],
                     fallback_price: str = "") -> Optional[Future]:
        """Select a point and fetch its listing details"""
        self.selected = SelectedPoint(
            id=point_id,
            coordinates=(coordinates[0], coordinates[1]),
            fallback_price=fallback_price,
        )

        if not point_id:
            self.detail_line.cancel()
            self._notify_selection()
            return None

        cached = self.context.detail_cache.get(point_id)
        if cached is not None:
            self.detail_line.cancel()
            self.selected.details = cached
            self._notify_selection()
            return None

        self.selected.loading = True
        self._notify_selection()
        return self.detail_line.submit(
            point_id,
            partial(self.context.api.fetch_listing, point_id),
            partial(self._apply_details, point_id),
            partial(self._details_failed, point_id),
        )

    def clear_selection(self) -> None:
        self.selected = None
        self.detail_line.cancel()
        self._notify_selection()

    def _apply_details(self, point_id: str, details: Dict[str, Any]) -> None:
        self.context.detail_cache.set(point_id, details)
        if self.selected is not None and self.selected.id == point_id:
            self.selected.details = details
            self.selected.loading = False
            self._notify_selection()

    def _details_failed(self, point_id: str, error: BaseException) -> None:
        logger.warning("Listing detail fetch failed", point_id=point_id, error=str(error))
        if self.selected is not None and self.selected.id == point_id:
            self.selected.error = str(error)
            self.selected.loading = False
            self._notify_selection()

    def _notify_selection(self) -> None:
        for listener in list(self._selection_listeners):
            listener(self.selected)
