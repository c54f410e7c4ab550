"""Prompt construction for single posts, clusters, and topic suggestions."""

from dataclasses import dataclass
from typing import List, Optional

from contentgen.pipeline import PreparedRequest, PreparedTopicRequest, subtopic_count
from contentgen.schemas import GenerationOptions, Product

LENGTH_TARGETS = {
    "short": "800-1000 words",
    "medium": "1200-1500 words",
    "long": "1800-2200 words",
}

SINGLE_POST_SYSTEM = (
    "You are an expert SEO content writer helping to create high-quality blog posts "
    "for online stores. Your content is detailed, engaging, and optimized for search engines."
)

CLUSTER_SYSTEM = (
    "You are an expert SEO content strategist who ONLY responds with valid JSON. "
    "Your output MUST be a single valid JSON object with no other text before or after it. "
    "If asked to generate content, always provide it in the exact JSON structure requested."
)


@dataclass
class Prompt:
    """A system/user prompt pair plus the sampling budget for one completion."""

    system: str
    user: str
    max_tokens: int = 4000
    temperature: Optional[float] = None


def format_options(options: GenerationOptions) -> str:
    """Render presentation preferences as a bullet block for the prompt."""
    length = options.article_length
    lines = [
        "Style and formatting requirements:",
        f"- Tone of voice: {options.tone_of_voice}",
        f"- Writing perspective: {options.writing_perspective}",
        f"- Introduction style: {options.intro_style}",
        f"- Target audience: {options.buyer_profile}",
        f"- Writer persona: {options.copywriter}",
        f"- Writing style: {options.style}",
        f"- Gender perspective: {options.gender}",
        f"- Article length: {length} ({LENGTH_TARGETS.get(length, LENGTH_TARGETS['medium'])})",
        f"- Include approximately {options.num_h2s} main sections with H2 headings",
        "- Include at least one comparison table where appropriate"
        if options.enable_tables
        else "- Do not include tables",
        "- Include bulleted or numbered lists where appropriate"
        if options.enable_lists
        else "- Do not include lists",
        "- Include citations or references where appropriate"
        if options.enable_citations
        else "- Do not include citations",
    ]
    if options.faq_style == "none":
        lines.append("- Do not include a FAQ section")
    else:
        count = "3-4 brief" if options.faq_style == "brief" else "5-7 detailed"
        lines.append(f"- Include a FAQ section with {count} questions and answers")
    return "\n".join(lines) + "\n"


def _product_block(products: List[Product], heading: str) -> str:
    if not products:
        return ""
    parts = [heading, ""]
    for index, product in enumerate(products, start=1):
        parts.append(f"Product {index}: {product.title}")
        if product.description:
            parts.append(f"Description: {product.description}")
        if product.price:
            parts.append(f"Price: {product.price}")
        parts.append("")
    return "\n".join(parts)


def _keyword_block(keywords: List[str], heading: str) -> str:
    if not keywords:
        return ""
    return f"{heading}\n{', '.join(keywords)}\n"


def build_single_post_prompt(item: PreparedRequest) -> Prompt:
    keywords_text = _keyword_block(
        item.keywords, "Keywords to incorporate into the content:"
    )
    product_text = _product_block(
        item.products, "Information about the products mentioned in this post:"
    )

    user = f"""
You are an expert SEO content writer creating a high-quality blog post for an online store.
Your goal is to create engaging, informative content that ranks well in search engines.

# TOPIC
{item.topic}

# CONTENT REQUIREMENTS
{keywords_text}
{format_options(item.options)}
{product_text}

# OUTPUT FORMAT
Please provide the blog post in the following JSON format:
{{
  "title": "Compelling SEO-optimized title",
  "content": "The full HTML content of the blog post",
  "meta_description": "A compelling meta description under 160 characters",
  "estimated_reading_time": "Estimated reading time in minutes",
  "suggested_tags": ["tag1", "tag2", "tag3"]
}}

Remember, high-quality content:
1. Has an engaging introduction that hooks the reader
2. Contains well-structured sections with clear H2 and H3 headings
3. Includes useful information and actionable advice
4. Naturally incorporates keywords without keyword stuffing
5. Has a clear call-to-action in the conclusion
6. Uses proper HTML formatting for headings, paragraphs, lists, etc.
""".strip()

    return Prompt(system=SINGLE_POST_SYSTEM, user=user, max_tokens=4000)


def build_cluster_prompt(item: PreparedRequest) -> Prompt:
    keywords_text = _keyword_block(
        item.keywords, "Keywords to incorporate into the cluster content:"
    )
    product_text = _product_block(
        item.products, "Information about the products related to this topic cluster:"
    )
    count = subtopic_count(item.topic)

    user = f"""
You are an expert SEO content strategist creating a topic cluster for an online store.

# MAIN TOPIC
{item.topic}

# CONTENT REQUIREMENTS
{keywords_text}
{format_options(item.options)}
{product_text}

Create a topic cluster with a pillar article and {count} subtopic articles. The pillar article should provide a comprehensive overview of the main topic, while each subtopic article should dive deeper into a specific aspect.

# OUTPUT FORMAT
EXTREMELY IMPORTANT: You MUST return a properly formatted JSON object exactly as specified below.
Do not include any explanatory text, markdown formatting, or other content outside of the JSON structure.

{{
  "pillar": {{
    "title": "SEO-optimized title for the pillar article",
    "meta_description": "Compelling meta description under 160 characters",
    "content": "Full HTML content of the pillar article",
    "suggested_tags": ["tag1", "tag2", "tag3"]
  }},
  "subtopics": [
    {{
      "title": "SEO-optimized title for subtopic 1",
      "meta_description": "Compelling meta description for subtopic 1",
      "content": "Full HTML content of subtopic 1 article",
      "suggested_tags": ["tag1", "tag2", "tag3"]
    }}
  ]
}}

REMEMBER: Your entire response must be valid JSON. No text before or after the JSON object.

Remember that:
1. Each article should have an engaging introduction
2. Use proper HTML formatting with h2 and h3 tags for structure
3. Include internal linking between the pillar and subtopic articles
4. Naturally incorporate keywords without keyword stuffing
5. Each article should have a clear call-to-action
""".strip()

    return Prompt(system=CLUSTER_SYSTEM, user=user, max_tokens=12000, temperature=0.3)


def build_topic_prompt(item: PreparedTopicRequest) -> Prompt:
    context = ""
    if item.products:
        context += "\n\nProducts Information:\n"
        for index, product in enumerate(item.products, start=1):
            suffix = f": {product.description}" if product.description else ""
            context += f'{index}. "{product.title}"{suffix}\n'
    if item.collections:
        context += "\n\nCollections Information:\n"
        for index, collection in enumerate(item.collections, start=1):
            suffix = f": {collection.description}" if collection.description else ""
            context += f'{index}. "{collection.title}"{suffix}\n'

    system = f"""
You are a professional SEO content strategist helping a Shopify store owner create engaging, high-quality {item.content_type} content.

I need you to generate topic suggestions that are optimized for SEO, engaging to readers, and relevant to the provided keywords and products.

FORMAT YOUR RESPONSE AS A JSON ARRAY with this structure:
[
  {{
    "title": "Compelling, SEO-friendly title with keyword(s)",
    "description": "Brief explanation of what the article would cover",
    "keywords": ["primary keyword", "secondary keyword"]
  }}
]{context}
""".strip()

    user = (
        "Generate 7-9 topic suggestions optimized for these keywords: "
        f"{', '.join(item.keywords)}. Focus on {item.content_type} content."
    )
    return Prompt(system=system, user=user, max_tokens=1500)
