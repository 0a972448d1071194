# -*- coding: utf-8 -*-
"""
Format hybrid search results as LLM context.

Renders ranked SearchResults into a compact Markdown block that a chat
assistant can cite: one numbered entry per material with its identifiers,
technical and commercial fields, and how it was matched. Unified results get a
short availability note on top (in stock vs FDA catalogue only).

Example:
    from src.retrieval.result_formatter import format_results

    context = format_results(service.search("RM000001"))
    prompt = f"{system_prompt}\n\n{context}\n\nQuestion: {question}"
"""
from typing import List

from src.utils.dataclasses import SearchMode, SearchResult, UnifiedSearchResult

NO_RESULTS_TEXT = "No relevant raw materials were found for this query."
NOT_IN_STOCK_TEXT = "No matching raw materials are in stock; the full FDA catalogue can still be searched."

MATCH_LABELS = {
    'exact': 'exact code match',
    'metadata': 'name match',
    'fuzzy': 'approximate name match',
    'semantic': 'semantic match',
}


def format_results(results: List[SearchResult], max_description_chars: int = 300) -> str:
    """
    Render results for inclusion in an LLM prompt.

    Args:
        results: Ranked search results.
        max_description_chars: Descriptions longer than this are cut with "...".

    Returns:
        Markdown text; a single sentence when results is empty.
    """
    if not results:
        return NO_RESULTS_TEXT

    lines = [f"## Raw material search results ({len(results)})", ""]
    for rank, result in enumerate(results, start=1):
        doc = result.document
        title = doc.trade_name or doc.inci_name or doc.code
        lines.append(f"### {rank}. {title} ({doc.code})")

        for label, value in (
            ('INCI Name', doc.inci_name),
            ('Category', doc.category),
            ('Function', doc.function),
            ('Supplier', doc.supplier),
            ('Company', doc.company_name),
            ('Cost', doc.cost_text),
        ):
            if value:
                lines.append(f"- {label}: {value}")

        if doc.description:
            description = ' '.join(doc.description.split())
            if len(description) > max_description_chars:
                description = description[:max_description_chars].rstrip() + '...'
            lines.append(f"- Description: {description}")

        match = MATCH_LABELS.get(result.match_type.value, result.match_type.value)
        fields = f" on {', '.join(result.matched_fields)}" if result.matched_fields else ""
        lines.append(f"- Relevance: {result.score:.2f} ({match}{fields})")
        lines.append("")

    return '\n'.join(lines).rstrip() + '\n'


def format_availability_note(results: List[UnifiedSearchResult], search_mode: SearchMode) -> str:
    """
    One-paragraph availability summary for unified search results.

    Args:
        results: Merged results from UnifiedSearchService.
        search_mode: Routing mode the results were produced under.

    Returns:
        Markdown lines counting in-stock and FDA-only materials.
    """
    if not results:
        return NOT_IN_STOCK_TEXT if search_mode == SearchMode.STOCK_ONLY else NO_RESULTS_TEXT

    in_stock = sum(1 for r in results if r.in_stock)
    fda_only = len(results) - in_stock

    lines = []
    if in_stock:
        lines.append(f"**{in_stock} in stock** (can be ordered now)")
    if fda_only and search_mode != SearchMode.STOCK_ONLY:
        lines.append(f"**{fda_only} in the FDA catalogue only** (may need to be sourced)")
    return '\n'.join(lines)
