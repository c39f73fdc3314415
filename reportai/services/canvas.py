"""
报表画布
维护用户手动摆放的组件（有序、可增删），保存时序列化为草稿报表
"""
import copy
import time
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .dto import CanvasComponent, ComponentRef, Position, Size
from .errors import ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DESCRIPTION = "Canvas-built report"


def _palette_entry(component_id: str, component_type: str, name: str, icon: str, color: str) -> Dict[str, str]:
    return {"id": component_id, "type": component_type, "name": name, "icon": icon, "color": color}


BASIC_COMPONENTS = [
    _palette_entry("header", "basic", "Header", "fas fa-heading", "text-indigo-600"),
    _palette_entry("text-body", "basic", "Text Body", "fas fa-paragraph", "text-gray-600"),
    _palette_entry("list", "basic", "List", "fas fa-list", "text-blue-600"),
    _palette_entry("table", "basic", "Table", "fas fa-table", "text-orange-600"),
    _palette_entry("image", "basic", "Image", "fas fa-image", "text-pink-600"),
    _palette_entry("metric", "basic", "Metric", "fas fa-tachometer-alt", "text-red-600"),
    _palette_entry("separator", "basic", "Separator", "fas fa-minus", "text-gray-400"),
]

CHART_COMPONENTS = [
    _palette_entry("histogram", "chart", "Histogram", "fas fa-chart-bar", "text-blue-600"),
    _palette_entry("pie-chart", "chart", "Pie Chart", "fas fa-chart-pie", "text-purple-600"),
    _palette_entry("bubble-chart", "chart", "Bubble Chart", "fas fa-circle", "text-cyan-600"),
    _palette_entry("surface-chart", "chart", "Surface Chart", "fas fa-mountain", "text-emerald-600"),
    _palette_entry("gantt-chart", "chart", "Gantt Chart", "fas fa-tasks", "text-amber-600"),
    _palette_entry("area-chart", "chart", "Area Chart", "fas fa-chart-area", "text-green-600"),
    _palette_entry("box-plot", "chart", "Box Plot", "fas fa-square", "text-violet-600"),
    _palette_entry("scatter-plot", "chart", "Scatter Plot", "fas fa-braille", "text-rose-600"),
    _palette_entry("bar-chart", "chart", "Bar Chart", "fas fa-chart-bar", "text-blue-700"),
    _palette_entry("line-chart", "chart", "Line Chart", "fas fa-chart-line", "text-green-700"),
    _palette_entry("lollipop-chart", "chart", "Lollipop Chart", "fas fa-grip-lines-vertical", "text-pink-600"),
    _palette_entry("heat-map", "chart", "Heat Map", "fas fa-th", "text-red-600"),
    _palette_entry("pareto-chart", "chart", "Pareto Chart", "fas fa-signal", "text-indigo-600"),
    _palette_entry("radar-chart", "chart", "Radar Chart", "fas fa-crosshairs", "text-teal-600"),
]

GRAPH_COMPONENTS = [
    _palette_entry("bullet-graph", "graph", "Bullet Graph", "fas fa-thermometer-half", "text-slate-600"),
    _palette_entry("dot-plot", "graph", "Dot Plot", "fas fa-ellipsis-h", "text-zinc-600"),
    _palette_entry("dumbbell-plot", "graph", "Dumbbell Plot", "fas fa-dumbbell", "text-stone-600"),
    _palette_entry("pictogram", "graph", "Pictogram", "fas fa-user", "text-neutral-600"),
    _palette_entry("line-graph", "graph", "Line Graph", "fas fa-project-diagram", "text-gray-600"),
    _palette_entry("mosaic-plot", "graph", "Mosaic Plot", "fas fa-border-all", "text-yellow-600"),
    _palette_entry("box-whisker-plot", "graph", "Box & Whisker Plot", "fas fa-rectangle-list", "text-lime-600"),
]


def get_palette() -> Dict[str, List[Dict[str, str]]]:
    """返回组件面板（按分组）"""
    return {
        "basic": copy.deepcopy(BASIC_COMPONENTS),
        "chart": copy.deepcopy(CHART_COMPONENTS),
        "graph": copy.deepcopy(GRAPH_COMPONENTS),
    }


class ReportCanvas:
    """
    报表画布

    组件按放置顺序保存。每个组件以原始字典形式保存，
    保存和下载时原样输出，保证前端传入的字段不被改写。
    """

    def __init__(self, components: Optional[List[Dict[str, Any]]] = None):
        self._components: List[Dict[str, Any]] = []
        for raw in components or []:
            self._append(raw)

    @classmethod
    def from_payload(cls, components: Any) -> "ReportCanvas":
        """
        从请求体中的组件列表构建画布

        Raises:
            ValidationError: components不是列表或组件结构不合法
        """
        if not isinstance(components, list):
            raise ValidationError("Components array is required")
        return cls(components)

    def _append(self, raw: Any) -> Dict[str, Any]:
        try:
            component = CanvasComponent.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid canvas component: {e.errors()[0].get('msg')}") from e

        if any(existing["id"] == component.id for existing in self._components):
            raise ValidationError(f"Duplicate canvas component id: {component.id}")

        entry = copy.deepcopy(raw)
        self._components.append(entry)
        return entry

    @property
    def components(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def add_component(
        self,
        component: Union[ComponentRef, Dict[str, Any]],
        position: Union[Position, Dict[str, float]],
        size: Union[Size, Dict[str, float], None] = None,
    ) -> Dict[str, Any]:
        """
        在放置位置添加组件

        组件ID由面板组件ID和毫秒时间戳组成，同一毫秒内重复放置时追加序号。
        """
        ref = ComponentRef.model_validate(component)
        base_id = f"{ref.id}-{int(time.time() * 1000)}"
        component_id = base_id
        suffix = 1
        while any(existing["id"] == component_id for existing in self._components):
            component_id = f"{base_id}-{suffix}"
            suffix += 1

        placed = CanvasComponent(
            id=component_id,
            component=ref,
            position=Position.model_validate(position),
            size=Size.model_validate(size) if size is not None else Size(),
        )
        return copy.deepcopy(self._append(placed.model_dump(mode="json", exclude_none=True)))

    def remove_component(self, component_id: str) -> bool:
        """按ID移除组件，返回是否找到"""
        remaining = [c for c in self._components if c["id"] != component_id]
        removed = len(remaining) != len(self._components)
        self._components = remaining
        return removed

    def clear(self) -> None:
        self._components = []

    def to_report_payload(self, title: Optional[str], description: Optional[str] = None) -> Dict[str, Any]:
        """
        序列化为新建草稿报表所需的字段

        标题和描述按提交内容原样保存，空描述使用默认描述

        Raises:
            ValidationError: 标题为空或画布为空
        """
        if not title or not title.strip():
            raise ValidationError("Report title is required")
        if not self._components:
            raise ValidationError("Add some components to your report before saving")

        return {
            "title": title,
            "description": description or DEFAULT_DESCRIPTION,
            "components": self.components,
            "status": "draft",
            "page_count": 1,
        }

    def to_download(self, title: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
        """导出未保存的画布布局"""
        return {
            "title": title or "Untitled Report",
            "description": description or DEFAULT_DESCRIPTION,
            "components": self.components,
            "exported_at": datetime.now(timezone.utc).isoformat(),
        }
