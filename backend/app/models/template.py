from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# === 排版模板配置（templates.config，JSON 以 camelCase 存储，前端直接读取） ===


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BoxSpacing(_CamelModel):
    """四边距，单位 mm"""

    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0


ZERO_BOX = BoxSpacing()

TextAlign = Literal["left", "center", "right", "justify"]


class SectionStyle(_CamelModel):
    font_family: str = "'Times New Roman', Times, serif"
    font_size: float = Field(10, gt=0, le=96)  # pt
    font_color: str = "#000000"
    bold: bool = False
    italic: bool = False
    underline: bool = False
    uppercase: bool = False
    text_align: TextAlign = "justify"
    background_color: str = "transparent"
    line_height: float = Field(1.4, gt=0, le=5)
    margin: BoxSpacing = Field(default_factory=BoxSpacing)
    padding: BoxSpacing = Field(default_factory=BoxSpacing)


class SectionStyleOverride(_CamelModel):
    """section 级覆盖：未设置的字段沿用 global"""

    font_family: Optional[str] = None
    font_size: Optional[float] = Field(None, gt=0, le=96)
    font_color: Optional[str] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    uppercase: Optional[bool] = None
    text_align: Optional[TextAlign] = None
    background_color: Optional[str] = None
    line_height: Optional[float] = Field(None, gt=0, le=5)
    margin: Optional[BoxSpacing] = None
    padding: Optional[BoxSpacing] = None


SECTION_KEYS: tuple[str, ...] = (
    "title",
    "authors",
    "affiliations",
    "abstract",
    "keywords",
    "sectionHeadings",
    "bodyText",
    "references",
    "tables",
    "header",
    "footer",
)

SECTION_LABELS: dict[str, str] = {
    "title": "Title",
    "authors": "Authors",
    "affiliations": "Affiliations",
    "abstract": "Abstract",
    "keywords": "Keywords",
    "sectionHeadings": "Section Headings",
    "bodyText": "Body Text",
    "references": "References",
    "tables": "Tables",
    "header": "Header",
    "footer": "Footer",
}


def resolve_style(global_style: SectionStyle, override: Optional[SectionStyleOverride] = None) -> SectionStyle:
    """
    global + section override -> 最终样式。margin/padding 依次回退到 override、global、全零。
    """
    merged = global_style.model_dump()
    if override is not None:
        merged.update(override.model_dump(exclude_none=True))
    merged["margin"] = (override.margin if override and override.margin else None) or global_style.margin or ZERO_BOX
    merged["padding"] = (override.padding if override and override.padding else None) or global_style.padding or ZERO_BOX
    return SectionStyle.model_validate(merged)


class PageConfig(_CamelModel):
    size: Literal["A4", "Letter", "A5", "B5"] = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    margins: BoxSpacing = Field(default_factory=lambda: BoxSpacing(top=25, right=20, bottom=25, left=20))
    background_color: str = "#ffffff"
    print_background: bool = False


class LayoutConfig(_CamelModel):
    column_count: Literal[1, 2, 3] = 2
    column_gap: float = Field(6, ge=0)  # mm
    abstract_full_width: bool = False
    title_full_width: bool = True


class HeaderTokenBlock(_CamelModel):
    tokens: list[str] = Field(default_factory=list)
    alignment: Literal["left", "center", "right"] = "left"


class HeaderConfig(_CamelModel):
    blocks: list[HeaderTokenBlock] = Field(
        default_factory=lambda: [
            HeaderTokenBlock(tokens=["{{journalName}}"], alignment="left"),
            HeaderTokenBlock(tokens=["Vol. {{volume}}, Issue {{issue}}, {{year}}"], alignment="right"),
        ]
    )
    border_bottom: bool = True
    border_color: str = "#cccccc"
    padding_bottom: float = 3
    margin_bottom: float = 5


class FooterConfig(_CamelModel):
    left_content: str = "{{journalName}}"
    right_content: str = ""
    show_page_number: bool = True
    page_number_position: Literal["left", "center", "right"] = "center"
    border_top: bool = True
    border_color: str = "#cccccc"


class AbstractLabelConfig(_CamelModel):
    label_text: str = "Abstract"
    label_bold: bool = True


class TableConfig(_CamelModel):
    border_width: float = Field(1, ge=0)  # px
    border_color: str = "#000000"
    header_background_color: str = "#f5f5f5"
    header_text_color: str = "#000000"
    caption_prefix: str = "Table"
    caption_italic: bool = False
    prevent_break: bool = True


class ReferenceConfig(_CamelModel):
    numbering_style: Literal["numbered", "apa", "mla", "chicago"] = "numbered"
    hanging_indent: float = Field(8, ge=0)  # mm
    auto_numbering: bool = True


class NumberingConfig(_CamelModel):
    table_prefix: str = "Table"
    figure_prefix: str = "Figure"
    reference_start_number: int = Field(1, ge=0)


class SpacingConfig(_CamelModel):
    between_sections: float = 8
    between_paragraphs: float = 3
    after_heading: float = 4


class PrintRulesConfig(_CamelModel):
    page_break_before_sections: bool = False
    avoid_break_inside_paragraphs: bool = True


class TokenConfig(_CamelModel):
    journal_name: str = "International Research Journal of Education and Practice"
    journal_abbreviation: str = "IRJEP"
    issn: str = ""


def _default_sections() -> dict[str, SectionStyleOverride]:
    sections = {key: SectionStyleOverride() for key in SECTION_KEYS}
    sections["title"] = SectionStyleOverride(font_size=18, bold=True, text_align="center")
    sections["authors"] = SectionStyleOverride(text_align="center")
    sections["affiliations"] = SectionStyleOverride(font_size=9, italic=True, text_align="center")
    sections["abstract"] = SectionStyleOverride(margin=BoxSpacing(left=10, right=10))
    sections["sectionHeadings"] = SectionStyleOverride(font_size=12, bold=True, uppercase=True, text_align="left")
    sections["references"] = SectionStyleOverride(font_size=9)
    sections["tables"] = SectionStyleOverride(font_size=9)
    sections["header"] = SectionStyleOverride(font_size=8)
    sections["footer"] = SectionStyleOverride(font_size=8)
    return sections


class JournalTemplateConfig(_CamelModel):
    page: PageConfig = Field(default_factory=PageConfig)
    global_style: SectionStyle = Field(default_factory=SectionStyle, alias="global")
    sections: dict[str, SectionStyleOverride] = Field(default_factory=_default_sections)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    header: HeaderConfig = Field(default_factory=HeaderConfig)
    footer: FooterConfig = Field(default_factory=FooterConfig)
    abstract_label: AbstractLabelConfig = Field(default_factory=AbstractLabelConfig)
    table: TableConfig = Field(default_factory=TableConfig)
    reference: ReferenceConfig = Field(default_factory=ReferenceConfig)
    numbering: NumberingConfig = Field(default_factory=NumberingConfig)
    spacing: SpacingConfig = Field(default_factory=SpacingConfig)
    print_rules: PrintRulesConfig = Field(default_factory=PrintRulesConfig)
    tokens: TokenConfig = Field(default_factory=TokenConfig)

    @field_validator("sections")
    @classmethod
    def _known_sections(cls, value: dict[str, SectionStyleOverride]) -> dict[str, SectionStyleOverride]:
        unknown = sorted(set(value) - set(SECTION_KEYS))
        if unknown:
            raise ValueError(f"unknown section keys: {unknown}")
        return value

    def style_for(self, section: str) -> SectionStyle:
        return resolve_style(self.global_style, self.sections.get(section))

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def default_template_config() -> JournalTemplateConfig:
    return JournalTemplateConfig()


AVAILABLE_TOKENS: tuple[tuple[str, str], ...] = (
    ("{{journalName}}", "Journal Name"),
    ("{{year}}", "Year"),
    ("{{doi}}", "DOI"),
    ("{{sectionName}}", "Section Name"),
    ("{{pageNumber}}", "Page Number"),
    ("{{volume}}", "Volume"),
    ("{{issue}}", "Issue"),
    ("{{issn}}", "ISSN"),
)


# === 请求体 ===


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    version: str = Field(..., min_length=1, max_length=50)
    config: JournalTemplateConfig = Field(default_factory=JournalTemplateConfig)


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    version: Optional[str] = Field(None, min_length=1, max_length=50)
    config: Optional[JournalTemplateConfig] = None
    is_active: Optional[bool] = None


class TemplateClone(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    version: str = Field(..., min_length=1, max_length=50)


class Template(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    version: str
    config: dict[str, Any]
    created_by: UUID
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
