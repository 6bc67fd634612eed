"""Conversion page pipeline.

validate -> rate table -> cross-rate -> conversion -> template -> streaming rewrite.

Validation happens before anything is fetched; the rate table and the
template are both confirmed present before the first byte is rewritten, so a
failed render never produces partial HTML.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape
from datetime import datetime, timezone
from typing import AsyncIterator, List

from converter.core.config import Settings
from converter.core.errors import UpstreamUnavailable
from converter.models.rates import ConversionRequest, RateTable
from converter.services.hydration import behavior_script, homepage_script, hydration_script
from converter.services.money import format_amount_param, format_money, format_rate
from converter.services.rates.conversion import ConversionResult, convert
from converter.services.rates.resolver import resolve_rate
from converter.services.rates.store import RateStore
from converter.services.rewriter import (
    AbsolutizeUrl,
    AppendHtml,
    HtmlRewriter,
    RemoveElement,
    Rule,
    SelectOption,
    SetAttribute,
    SetInnerHtml,
    SetText,
)
from converter.services.templates import TemplateStore

logger = logging.getLogger("converter.page")

ASSET_RULES: List[Rule] = [
    AbsolutizeUrl("link[href]", "href"),
    AbsolutizeUrl("script[src]", "src"),
    AbsolutizeUrl("img[src]", "src"),
]


@dataclass(frozen=True)
class RenderContext:
    """Per-request collaborators; built once per invocation, never shared."""

    rates: RateStore
    templates: TemplateStore
    settings: Settings


@dataclass(frozen=True)
class PageContent:
    title: str
    description: str
    conversion_text: str
    rate_text: str
    updated_text: str


def load_rate_table(ctx: RenderContext) -> RateTable:
    table = ctx.rates.get_table(ctx.settings.base_currency)
    if table is None:
        raise UpstreamUnavailable("Exchange rates not available")
    return table


def resolve_conversion(table: RateTable, request: ConversionRequest) -> ConversionResult:
    rate = resolve_rate(table, request.from_currency, request.to_currency)
    return convert(rate, request.amount)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc)


def describe(request: ConversionRequest, result: ConversionResult, table: RateTable) -> PageContent:
    src, dst = request.from_currency, request.to_currency
    amount_text = format_money(request.amount)
    converted_text = format_money(result.converted_amount)
    conversion_text = f"{amount_text} {src} = {converted_text} {dst}"
    return PageContent(
        title=f"{amount_text} {src} to {dst} - {converted_text} {dst} | Currency Converter",
        description=(
            f"Convert {src} to {dst}. {conversion_text}. Live exchange rates updated regularly."
        ),
        conversion_text=conversion_text,
        rate_text=f"1 {src} = {format_rate(result.rate)} {dst}",
        updated_text=f"Last updated: {_as_utc(table.as_of).strftime('%Y-%m-%d %H:%M UTC')}",
    )


def conversion_rules(
    request: ConversionRequest, result: ConversionResult, content: PageContent
) -> List[Rule]:
    src, dst = request.from_currency, request.to_currency
    title = escape(content.title, quote=True)
    description = escape(content.description, quote=True)
    head_markup = (
        f'<meta name="description" content="{description}">'
        f'<meta property="og:title" content="{title}">'
        f'<meta property="og:description" content="{description}">'
        + hydration_script(src, dst, result.rate, request.amount)
    )
    result_markup = (
        '<div style="text-align: center;">'
        '<div class="fx-conversion-text" style="font-size: 2rem; font-weight: bold; margin-bottom: 0.5rem;">'
        f"{escape(content.conversion_text)}</div>"
        '<div class="fx-rate-text" style="font-size: 1rem; color: #666;">'
        f"{escape(content.rate_text)}</div>"
        '<div class="fx-updated-text" style="font-size: 0.875rem; color: #999; margin-top: 0.5rem;">'
        f"{escape(content.updated_text)}</div>"
        "</div>"
    )
    return [
        *ASSET_RULES,
        AbsolutizeUrl("a[href]", "href"),
        SetText("title", content.title),
        AppendHtml("head", head_markup),
        SetAttribute("input#amount", "value", format_amount_param(request.amount)),
        SetAttribute("select#from", "data-selected", src),
        SelectOption("select#from option", src),
        SetAttribute("select#to", "data-selected", dst),
        SelectOption("select#to option", dst),
        SetInnerHtml("#conversion", result_markup),
        RemoveElement("a#button"),
        AppendHtml("body", behavior_script()),
    ]


async def render_conversion_page(
    ctx: RenderContext, request: ConversionRequest
) -> AsyncIterator[bytes]:
    """Resolve everything the page needs, then return the rewritten stream."""
    table = load_rate_table(ctx)
    result = resolve_conversion(table, request)
    content = describe(request, result, table)
    template = await ctx.templates.open(ctx.settings.template_path)
    logger.info(
        "rendering %s->%s amount=%s rate=%s",
        request.from_currency,
        request.to_currency,
        request.amount,
        result.rate,
    )
    rewriter = HtmlRewriter(conversion_rules(request, result, content))
    return rewriter.transform(template)


async def render_homepage(ctx: RenderContext) -> AsyncIterator[bytes]:
    template = await ctx.templates.open(ctx.settings.index_path)
    rewriter = HtmlRewriter([*ASSET_RULES, AppendHtml("body", homepage_script())])
    return rewriter.transform(template)
