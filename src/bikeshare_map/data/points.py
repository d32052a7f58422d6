"""Live docking-station feed.

The feed is fetched once per run, flattened with ``pandas.json_normalize``
and reduced to :class:`PointRecord` values.
"""

import logging
from dataclasses import asdict, dataclass
from types import TracebackType
from typing import Any, Dict, List, Optional, Type

import pandas as pd
import requests

from bikeshare_map.config import FeedConfig
from bikeshare_map.errors import FetchError, SchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointRecord:
    """A single docking station."""

    id: str
    name: str
    lat: float
    lon: float

    def to_dict(self) -> dict:
        return asdict(self)


class PointFeedClient:
    """Fetches the docking-station feed.

    Single attempt, no retry and no caching. The underlying session is closed
    when the client is used as a context manager or ``close()`` is called.
    """

    def __init__(self, feed: Optional[FeedConfig] = None):
        self.feed = feed or FeedConfig()
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "PointFeedClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def _get_json(self) -> Any:
        try:
            response = self.session.get(
                self.feed.url,
                headers={"Accept": "application/json"},
                timeout=self.feed.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"Station feed request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"Invalid JSON payload from {self.feed.url}") from exc

    def fetch_points(self) -> List[PointRecord]:
        """Fetch the feed and return one record per station.

        Raises:
            FetchError: If the request fails or the body is not JSON
            SchemaError: If id, name, lat or lon is absent or invalid
        """
        payload = self._get_json()
        records = parse_points(_station_list(payload), self.feed)
        logger.info("Fetched %d stations from %s", len(records), self.feed.url)
        return records


def _station_list(payload: Any) -> List[Dict[str, Any]]:
    """Unwrap the station list from the known feed envelopes."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if isinstance(payload.get("stations"), list):
            return payload["stations"]
        data = payload.get("data")
        if isinstance(data, dict) and isinstance(data.get("stations"), list):
            return data["stations"]
    raise SchemaError("Station feed is not a list of stations")


def parse_points(
    stations: List[Dict[str, Any]],
    feed: Optional[FeedConfig] = None,
) -> List[PointRecord]:
    """Flatten raw station objects into PointRecords.

    Duplicate ids keep their first occurrence.
    """
    feed = feed or FeedConfig()
    fields = {
        feed.id_field: "id",
        feed.name_field: "name",
        feed.lat_field: "lat",
        feed.lon_field: "lon",
    }

    if not stations:
        return []

    flat = pd.json_normalize(stations)
    missing = [source for source in fields if source not in flat.columns]
    if missing:
        raise SchemaError(f"Station feed is missing fields: {missing}")

    frame = flat[list(fields)].rename(columns=fields)
    if frame[["id", "name", "lat", "lon"]].isna().any().any():
        raise SchemaError("Station feed has null id, name or coordinates")

    try:
        frame["lat"] = pd.to_numeric(frame["lat"])
        frame["lon"] = pd.to_numeric(frame["lon"])
    except (TypeError, ValueError) as exc:
        raise SchemaError(f"Non-numeric station coordinates: {exc}") from exc

    out_of_range = ~(frame["lat"].between(-90, 90) & frame["lon"].between(-180, 180))
    if out_of_range.any():
        bad = frame.loc[out_of_range, "id"].astype(str).tolist()
        raise SchemaError(f"Station coordinates out of range for ids: {bad[:10]}")

    duplicated = frame["id"].duplicated()
    if duplicated.any():
        logger.warning(
            "Dropping %d duplicate station ids from feed", int(duplicated.sum())
        )
        frame = frame[~duplicated]

    return [
        PointRecord(
            id=str(row.id),
            name=str(row.name),
            lat=float(row.lat),
            lon=float(row.lon),
        )
        for row in frame.itertuples(index=False)
    ]


def fetch_points(feed: Optional[FeedConfig] = None) -> List[PointRecord]:
    """Convenience function: fetch the station feed with a fresh client.

    Example:
        >>> stations = fetch_points()
        >>> stations[0].name
        'River Street , Clerkenwell'
    """
    with PointFeedClient(feed) as client:
        return client.fetch_points()


def points_to_frame(points: List[PointRecord]) -> pd.DataFrame:
    """Tabular view of the records, one row per station."""
    return pd.DataFrame(
        [point.to_dict() for point in points],
        columns=["id", "name", "lat", "lon"],
    )
