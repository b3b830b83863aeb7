from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from app.lib.api_client import extract_rows

ARTICLES_TABLE = "articles"
DEFAULT_SLUG = "article"

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w-]")
_DASHES_RE = re.compile(r"-{2,}")


def slugify(title: str) -> str:
    """
    标题 -> URL slug：小写、空白转连字符、去掉非单词字符、合并连续连字符。
    """
    slug = _WHITESPACE_RE.sub("-", str(title or "").strip().lower())
    slug = _NON_WORD_RE.sub("", slug)
    slug = _DASHES_RE.sub("-", slug).strip("-_")
    return slug or DEFAULT_SLUG


def make_unique_slug(client: Any, title: str) -> str:
    """
    基于 by_slug 索引做冲突检查：title、title-2、title-3 ... 取第一个未占用的。

    中文注释:
    - 数据库 articles.slug 有唯一约束；并发下两个请求可能拿到同一个候选值，
      此时后写入的一方会收到唯一约束错误，由调用方转成校验错误返回。
    """
    base = slugify(title)
    resp = client.table(ARTICLES_TABLE).select("slug").like("slug", f"{base}%").execute()
    taken = {str(r.get("slug") or "") for r in extract_rows(resp)}
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def author_names(submission: dict[str, Any]) -> list[str]:
    names = [
        str(a.get("name") or "").strip()
        for a in (submission.get("research_authors") or [])
        if isinstance(a, dict)
    ]
    names = [n for n in names if n]
    if names:
        return names
    corresponding = submission.get("corresponding_author") or {}
    fallback = str(corresponding.get("name") or "").strip() if isinstance(corresponding, dict) else ""
    return [fallback] if fallback else []


def build_article_payload(
    client: Any,
    submission: dict[str, Any],
    *,
    issue_id: str,
    page_range: Optional[str] = None,
    doi: Optional[str] = None,
) -> dict[str, Any]:
    """
    Submission -> Article 的一次性投影（之后稿件修改不会回写文章）。
    """
    title = str(submission.get("title") or "").strip()
    return {
        "submission_id": str(submission["id"]),
        "issue_id": str(issue_id),
        "title": title,
        "authors": author_names(submission),
        "page_range": page_range,
        "doi": doi,
        "publish_date": datetime.now(timezone.utc).isoformat(),
        "slug": make_unique_slug(client, title),
    }
