from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from app.models.paper import StructuredPaperData
from app.models.template import SECTION_KEYS, BoxSpacing, JournalTemplateConfig, SectionStyle

_TOKEN_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _templates_dir() -> Path:
    # backend/app/services -> backend/app -> backend/app/core/templates
    return Path(__file__).resolve().parents[1] / "core" / "templates"


_jinja = Environment(
    loader=FileSystemLoader(str(_templates_dir())),
    autoescape=select_autoescape(["html", "xml"]),
)


def _box(box: BoxSpacing) -> str:
    return f"{box.top:g}mm {box.right:g}mm {box.bottom:g}mm {box.left:g}mm"


def style_to_css(style: SectionStyle) -> str:
    """
    SectionStyle -> CSS 声明串（不含选择器）。
    """
    decls = [
        f"font-family: {style.font_family}",
        f"font-size: {style.font_size:g}pt",
        f"color: {style.font_color}",
        f"font-weight: {'bold' if style.bold else 'normal'}",
        f"font-style: {'italic' if style.italic else 'normal'}",
        f"text-decoration: {'underline' if style.underline else 'none'}",
        f"text-transform: {'uppercase' if style.uppercase else 'none'}",
        f"text-align: {style.text_align}",
        f"background-color: {style.background_color}",
        f"line-height: {style.line_height:g}",
        f"margin: {_box(style.margin)}",
        f"padding: {_box(style.padding)}",
    ]
    return "; ".join(decls) + ";"


def section_css(config: JournalTemplateConfig) -> Dict[str, Markup]:
    # 中文注释: 输出在 <style> 内，不能走 HTML 转义；去掉尖括号避免提前闭合 style 标签
    return {
        key: Markup(style_to_css(config.style_for(key)).replace("<", "").replace(">", ""))
        for key in SECTION_KEYS
    }


def token_values(config: JournalTemplateConfig, paper: StructuredPaperData) -> Dict[str, str]:
    meta = paper.meta
    published = (meta.published_date or "").strip()
    year = published[:4] if published[:4].isdigit() else str(datetime.now(timezone.utc).year)
    return {
        "journalName": config.tokens.journal_name,
        "year": year,
        "doi": meta.doi or "",
        "volume": meta.volume or "",
        "issue": meta.issue or "",
        "issn": config.tokens.issn,
        "pageNumber": meta.pages or "",
        "sectionName": meta.article_type or "",
    }


def substitute_tokens(text: str, values: Dict[str, str]) -> str:
    """
    替换 {{token}} 占位符；未知 token 原样保留，便于模板作者发现拼写错误。
    """
    return _TOKEN_RE.sub(lambda m: values.get(m.group(1), m.group(0)), text or "")


def render_paper_html(*, paper: StructuredPaperData, config: JournalTemplateConfig) -> str:
    values = token_values(config, paper)
    header_blocks = [
        {
            "alignment": block.alignment,
            "text": " ".join(substitute_tokens(t, values) for t in block.tokens),
        }
        for block in config.header.blocks
    ]
    footer = {
        "left": substitute_tokens(config.footer.left_content, values),
        "right": substitute_tokens(config.footer.right_content, values),
    }
    page_size = f"{config.page.size} {config.page.orientation}"

    # 中文注释: 正文/摘要是编辑器产出的 HTML，只有编辑和管理员能写入，这里按可信内容输出
    return _jinja.get_template("paper.html").render(
        page_size=page_size,
        page_margin=_box(config.page.margins),
        page=config.page,
        layout=config.layout,
        css=section_css(config),
        header=config.header,
        header_blocks=header_blocks,
        footer_config=config.footer,
        footer=footer,
        abstract_label=config.abstract_label,
        table_config=config.table,
        reference_config=config.reference,
        spacing=config.spacing,
        print_rules=config.print_rules,
        paper=paper,
        abstract_html=Markup(paper.abstract or ""),
        sections=[_section_view(s) for s in paper.body],
    )


def _section_view(section) -> dict:
    return {
        "heading": section.heading,
        "content": Markup(section.content or ""),
        "columns": section.columns,
        "subsections": [_section_view(s) for s in section.subsections],
    }
