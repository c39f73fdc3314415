"""
数据传输对象 (Data Transfer Objects)
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal

SECTION_TYPES = ("text", "chart", "table")
CHART_TYPES = ("bar", "line", "pie", "area")
REPORT_STATUSES = ("draft", "generated", "published")


class Section(BaseModel):
    """报表章节"""
    id: str
    title: str
    type: Literal["text", "chart", "table"]
    chart_type: Optional[str] = None  # 仅 type=chart 时有意义
    content: Optional[str] = None
    data: Optional[Any] = None

    @field_validator("type", "chart_type", mode="before")
    @classmethod
    def _lowercase(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _normalize_chart_type(self):
        # 非图表章节不携带图表类型，未知图表类型直接丢弃
        if self.type != "chart" or self.chart_type not in CHART_TYPES:
            self.chart_type = None
        return self


class ReportStructure(BaseModel):
    """AI生成的报表结构"""
    title: str
    sections: List[Section] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)


class Position(BaseModel):
    """画布坐标"""
    x: float
    y: float


class Size(BaseModel):
    """画布组件尺寸"""
    width: float = 300
    height: float = 200


class ComponentRef(BaseModel):
    """组件面板中的组件定义（图标、颜色等展示字段原样保留）"""
    model_config = ConfigDict(extra="allow")

    id: str
    type: str  # basic, chart, graph
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    config: Optional[Dict[str, Any]] = None


class CanvasComponent(BaseModel):
    """放置在画布上的组件"""
    id: str
    component: ComponentRef
    position: Position
    size: Size = Field(default_factory=Size)

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("component id must not be empty")
        return value


class FilePreview(BaseModel):
    """上传文件解析结果"""
    original_name: str
    size: int
    row_count: int
    columns: List[str]
    preview: List[Any]


class UserStats(BaseModel):
    """用户统计"""
    reports_generated: int
    data_sources_connected: int
    api_requests: int
    downloads_count: int
