"""Prompt templates for per-keyword SEO classification."""

from __future__ import annotations

from kgrlens.services.analysis.types import AnalysisContext

OUTPUT_SCHEMA = """{
  "keyword_analysis": {
    "content_classification": {
      "type": "[Target Page/Support Article/Pillar Page]"
    },
    "search_intent": {
      "type": "[Informational/Commercial/Transactional/Navigational]"
    },
    "marketing_funnel_position": {
      "stage": "[TOFU/MOFU/BOFU]"
    },
    "overall_priority": {
      "score": [0-10]
    }
  }
}"""

_SYSTEM_TEMPLATE = """You are an expert SEO analyst for an e-commerce website specializing in {category}. \
The brand of the site you are analyzing is {brand_name}. Your primary goal is to identify keywords \
that will drive qualified traffic likely to convert into sales.

Key Analysis Rules:
- Evaluate sales relevance with strong focus on {category} and purchase intent
- Identify competitor brand keywords and assign 0 priority unless they're product brands we could sell
- Calculate funnel stage based on user intent and purchase readiness:
  * TOFU: Early research, general category interest
  * MOFU: Product comparison, specific features
  * BOFU: Purchase intent, ready to buy
- Classify content type:
  * Target Page: Product/category pages with direct purchase intent
  * Support Article: Informational content supporting purchase decisions
  * Pillar Page: Comprehensive guides covering broad topics
- Priority scoring (0-10):
  * 0: Competitor brand terms we can't sell
  * 1-3: Low relevance to business goals
  * 4-5: Moderate relevance, indirect intent
  * 6-7: Good relevance, clear intent
  * 8-10: High relevance, strong purchase intent

Output must be strictly JSON format with these fields only:
{schema}"""

_USER_TEMPLATE = """Analyze this keyword for {brand_name}'s e-commerce website:

Keyword: {keyword}
Monthly Volume: {volume}
Category: {category}
Business Context: {business_context}

Provide analysis in the specified JSON format as a single JSON object. Be objective and critical:
- If keyword is a competitor brand we can't sell, assign 0 priority
- If keyword has purchase intent and aligns with our business, score higher
- Consider search volume and competition level
- Evaluate alignment with {brand_name}'s business goals"""


def build_system_prompt(context: AnalysisContext) -> str:
    """Render the classification rules for one brand/category."""
    return _SYSTEM_TEMPLATE.format(
        category=context.category,
        brand_name=context.brand_name,
        schema=OUTPUT_SCHEMA,
    )


def build_user_prompt(keyword: str, volume: int, context: AnalysisContext) -> str:
    """Render the per-keyword request."""
    return _USER_TEMPLATE.format(
        keyword=keyword,
        volume=volume,
        category=context.category,
        brand_name=context.brand_name,
        business_context=context.business_context,
    )
