import json
from collections.abc import Mapping
from typing import Any, Dict, List, Sequence

from .completions import CompletionsClient
from .schemas import ChatArticle

"""
News chat: answer a reader's question using only the articles on the page.

Flow:
  1) Keep the first MAX_ARTICLES articles, normalized (missing fields -> "").
  2) Build a two-message exchange: fixed system prompt + templated user prompt
     embedding the question verbatim and the articles as indented JSON.
  3) One free-text completion; the stripped content is the answer.
"""

# -----------------------------
# Config
# -----------------------------
# Keeps prompts small; the page never shows more than this many cards anyway.
MAX_ARTICLES: int = 15

ARTICLE_FIELDS = ("title", "description", "category", "source", "url")

# -----------------------------
# Prompts
# -----------------------------
SYSTEM_PROMPT = (
    "You are a calm, structured assistant for summarising a news feed. "
    "Keep answers short and grounded in the provided articles."
)

USER_PROMPT_TEMPLATE = """\
You are a calm, concise news assistant.

You receive:
- A list of recent news articles (title, brief description, category, source, URL)
- A question from the user

Your job:
1. Answer ONLY using information that could reasonably come from these articles.
2. If the user asks something outside these articles, say briefly that you only know about "today's feed" shown on the page.
3. Be clear and structured. Prefer short bullet points (3-6 bullets) or a short paragraph.
4. If relevant, mention source names (like "Indian Express", "TechCrunch") in a natural way.
5. If the question is broad (e.g., "What are today's highlights?"), summarise key themes in 3-5 bullets.
6. If articles show both positive and negative aspects, keep a balanced and non-alarming tone.

User question:
"{question}"

Articles context (array of objects):
{articles_json}"""


# -----------------------------
# Helper functions
# -----------------------------
def normalize_articles(articles: Sequence[Any]) -> List[ChatArticle]:
    items: List[ChatArticle] = []
    for idx, raw in enumerate(articles[:MAX_ARTICLES]):
        if raw is None:
            raise TypeError(f"article {idx} is null")
        fields = raw if isinstance(raw, Mapping) else {}
        items.append(ChatArticle(index=idx, **{k: fields.get(k) for k in ARTICLE_FIELDS}))
    return items


def question_text(value: Any) -> str:
    """
    Render a JSON question value the way the front-end's templates do.

    Strings pass through; true/false stay lowercase; whole floats drop the
    ".0"; arrays join their items with commas; objects become "[object Object]".
    """
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join(question_text(v) for v in value)
    if isinstance(value, Mapping):
        return "[object Object]"
    return str(value)


def build_messages(question: Any, articles: List[ChatArticle]) -> List[Dict[str, str]]:
    articles_json = json.dumps(
        [a.model_dump() for a in articles], indent=2, ensure_ascii=False
    )
    user_prompt = USER_PROMPT_TEMPLATE.format(
        question=question_text(question), articles_json=articles_json
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt.strip()},
    ]


# -----------------------------
# Public entrypoint
# -----------------------------
async def answer_question(question: Any, articles: Sequence[Any], client: CompletionsClient) -> str:
    """
    Answer `question` from the first MAX_ARTICLES of `articles`.

    Returns the stripped completion text, or "" when the model sent nothing.
    Upstream failures propagate (UpstreamError or SDK errors).
    """
    messages = build_messages(question, normalize_articles(articles))
    content = await client.complete(messages)
    return (content or "").strip()
