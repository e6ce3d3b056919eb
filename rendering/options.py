"""
Immutable rendering settings passed from the orchestrator to the renderer.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Tuple

if TYPE_CHECKING:
    from ops import Config


def humanize(column: str) -> str:
    """Turn a column name into a display label (``crime_rate`` → ``Crime Rate``)."""
    return column.replace("_", " ").strip().title()


@dataclass(frozen=True)
class RenderOptions:
    """What to render and how it should look."""

    metric: str = "crime_rate"
    secondary_metric: Optional[str] = "pollution_index"
    metric_label: Optional[str] = None
    secondary_label: Optional[str] = None
    title: Optional[str] = None
    legend_label: Optional[str] = None
    bins: int = 6
    palette: str = "YlOrRd"
    nan_color: str = "#d3d3d3"
    border_color: str = "#BDBDC3"
    fill_opacity: float = 0.7
    map_center: Optional[Tuple[float, float]] = (37.8, -96.0)
    zoom_start: int = 4
    tiles: str = "OpenStreetMap"
    static_size: Tuple[float, float] = (12, 8)
    static_dpi: int = 150
    static_crs: str = "EPSG:3857"

    @property
    def metric_display(self) -> str:
        return self.metric_label or humanize(self.metric)

    @property
    def secondary_display(self) -> Optional[str]:
        if self.secondary_metric is None:
            return None
        return self.secondary_label or humanize(self.secondary_metric)

    @property
    def title_text(self) -> str:
        return self.title or f"{self.metric_display} by Region"

    @property
    def legend_text(self) -> str:
        return self.legend_label or self.metric_display

    def with_metric(self, metric: str, secondary_metric: Optional[str] = None) -> "RenderOptions":
        return replace(self, metric=metric, secondary_metric=secondary_metric, metric_label=None, secondary_label=None)

    @classmethod
    def from_config(cls, config: "Config") -> "RenderOptions":
        def setting(key: str) -> Any:
            return config.get_visualization_setting(key)

        center = setting("map_center")
        if isinstance(center, str) and center.lower() == "auto":
            map_center = None
        elif center:
            map_center = (float(center[0]), float(center[1]))
        else:
            map_center = None

        return cls(
            metric=setting("metric"),
            secondary_metric=setting("secondary_metric") or None,
            metric_label=setting("metric_label"),
            secondary_label=setting("secondary_label"),
            title=setting("title"),
            legend_label=setting("legend_label"),
            bins=int(setting("bins")),
            palette=setting("palette"),
            nan_color=setting("nan_color"),
            border_color=setting("border_color"),
            fill_opacity=float(setting("fill_opacity")),
            map_center=map_center,
            zoom_start=int(setting("zoom_start")),
            tiles=setting("tiles"),
            static_size=(float(setting("static_width")), float(setting("static_height"))),
            static_dpi=int(setting("static_dpi")),
            static_crs=config.get_system_setting("static_crs"),
        )


@dataclass(frozen=True)
class OutputPaths:
    """Where each artifact is written."""

    interactive_map: Path = Path("interactive_geospatial_map.html")
    static_image: Path = Path("static_choropleth.png")
    metrics_csv: Path = Path("region_metrics_export.csv")

    @classmethod
    def from_config(cls, config: "Config") -> "OutputPaths":
        return cls(
            interactive_map=config.get_output_path("interactive_map"),
            static_image=config.get_output_path("static_image"),
            metrics_csv=config.get_output_path("metrics_csv"),
        )
