"""
Map rendering for MapSpec descriptions.

This module draws the declarative map description with matplotlib and
GeoPandas. Tiles are not downloaded: the tile layer becomes a plain
background with its attribution.
"""

import base64
import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Patch

from bikeshare_map.config import MapConfig
from bikeshare_map.maps.spec import ChoroplethLayer, MapSpec, MarkerLayer, TileLayer

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "png": "image/png",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
}


class MapVisualizer:
    """Renders MapSpec objects to matplotlib figures."""

    def __init__(self, style: Optional[MapConfig] = None):
        """Initialize the visualizer.

        Args:
            style: Figure size and background settings
        """
        self.style = style or MapConfig()

    def render(self, spec: MapSpec, ax: Optional[Axes] = None) -> Tuple[Figure, Axes]:
        """Draw every layer of ``spec`` in order.

        Args:
            spec: Map description
            ax: Existing axes to plot on (creates new if None)

        Returns:
            Tuple of (Figure, Axes)
        """
        if ax is None:
            fig, ax = plt.subplots(1, 1, figsize=self.style.figsize)
        else:
            fig = ax.get_figure()

        handles: List[Any] = []
        for layer in spec.layers:
            if isinstance(layer, TileLayer):
                self._plot_tiles(layer, ax)
            elif isinstance(layer, ChoroplethLayer):
                handles.extend(self._plot_choropleth(layer, ax))
            elif isinstance(layer, MarkerLayer):
                handles.extend(self._plot_markers(layer, ax))

        width, height = fig.get_size_inches()
        min_lon, min_lat, max_lon, max_lat = spec.viewport.bounds(aspect=height / width)
        ax.set_xlim(min_lon, max_lon)
        ax.set_ylim(min_lat, max_lat)
        ax.set_xticks([])
        ax.set_yticks([])

        if handles:
            ax.legend(handles=handles, loc="upper left", fontsize=8, framealpha=0.9)

        ax.set_title(spec.title, fontsize=14, fontweight='bold')
        plt.tight_layout()
        return fig, ax

    def _plot_tiles(self, layer: TileLayer, ax: Axes):
        ax.set_facecolor(self.style.background_color)
        ax.text(
            0.99, 0.01, layer.attribution,
            transform=ax.transAxes,
            ha="right", va="bottom", fontsize=6, color="#555555",
        )

    def _plot_choropleth(self, layer: ChoroplethLayer, ax: Axes) -> List[Patch]:
        """Plot one polygon layer and return its legend entries."""
        if layer.is_empty:
            logger.warning("Layer %r has no polygons to draw", layer.name)
            return []

        if layer.fill_opacity > 0:
            layer.data.plot(
                ax=ax,
                color=layer.colors(),
                edgecolor=layer.edge_color,
                linewidth=layer.edge_width,
                alpha=layer.fill_opacity,
                zorder=layer.zorder,
            )
        else:
            layer.data.boundary.plot(
                ax=ax,
                color=layer.edge_color,
                linewidth=layer.edge_width,
                zorder=layer.zorder,
            )

        if layer.label_column and layer.label_column in layer.data.columns:
            for geometry, label in zip(layer.data.geometry, layer.data[layer.label_column]):
                if geometry is None or geometry.is_empty:
                    continue
                point = geometry.representative_point()
                ax.annotate(
                    str(label),
                    xy=(point.x, point.y),
                    ha="center", fontsize=7, zorder=layer.zorder + 2,
                )

        if layer.scale is None:
            return []
        return [
            Patch(facecolor=color, alpha=layer.fill_opacity, label=f"{layer.name}: {value}")
            for value, color in zip(layer.scale.domain, layer.scale.colors)
        ]

    def _plot_markers(self, layer: MarkerLayer, ax: Axes) -> List[Line2D]:
        if not layer.points:
            return []
        ax.scatter(
            [p.lon for p in layer.points],
            [p.lat for p in layer.points],
            s=layer.size,
            c=layer.color,
            edgecolors="white",
            linewidths=0.3,
            zorder=layer.zorder,
        )
        return [
            Line2D([], [], marker="o", linestyle="", color=layer.color, label=layer.name)
        ]

    def save(
        self,
        filepath: Union[str, Path],
        fig: Figure,
        dpi: int = 150,
        **kwargs
    ):
        """Save a rendered figure to a file.

        Args:
            filepath: Output file path
            fig: Figure to save
            dpi: Resolution in dots per inch
            **kwargs: Additional arguments passed to savefig
        """
        fig.savefig(filepath, dpi=dpi, bbox_inches='tight', **kwargs)

    def to_bytes(self, fig: Figure, format: str = "png", dpi: int = 150) -> bytes:
        """Encode a figure as image bytes."""
        buffer = io.BytesIO()
        fig.savefig(buffer, format=format, dpi=dpi, bbox_inches='tight')
        return buffer.getvalue()

    def to_data_uri(self, fig: Figure, format: str = "png", dpi: int = 100) -> str:
        """Encode a figure as a base64 data URI for embedding in HTML/JSON."""
        encoded = base64.b64encode(self.to_bytes(fig, format=format, dpi=dpi)).decode("ascii")
        mime = MIME_TYPES.get(format, f"image/{format}")
        return f"data:{mime};base64,{encoded}"


def render_map(
    spec: MapSpec,
    style: Optional[MapConfig] = None,
    save_path: Optional[Union[str, Path]] = None,
) -> Tuple[Figure, Axes]:
    """Convenience function to render (and optionally save) a map.

    Example:
        >>> fig, ax = render_map(spec, save_path="deprivation_map.png")
    """
    viz = MapVisualizer(style)
    fig, ax = viz.render(spec)
    if save_path:
        viz.save(save_path, fig)
    return fig, ax


def layer_summary(spec: MapSpec) -> Dict[str, int]:
    """Feature count per layer, for logs and the viewer API."""
    summary = {}
    for layer in spec.layers:
        if isinstance(layer, ChoroplethLayer):
            summary[layer.name] = 0 if layer.is_empty else len(layer.data)
        elif isinstance(layer, MarkerLayer):
            summary[layer.name] = len(layer.points)
    return summary
