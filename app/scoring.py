import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Union

from .completions import CompletionsClient
from .schemas import ScoringArticle

"""
Positivity scoring: one number in [-5, 5] per article, from a JSON-mode completion.

The model's array is never trusted for length: the result always has one
entry per submitted article, with anything missing or non-numeric set to 0.
Whether the model kept the article order is not checked.
"""

logger = logging.getLogger(__name__)

# -----------------------------
# Config
# -----------------------------
# Cost & latency cap per request.
MAX_ARTICLES: int = 40

ARTICLE_FIELDS = ("title", "description", "content", "category", "source", "sourceKey")

Score = Union[int, float]

# -----------------------------
# Prompts
# -----------------------------
SYSTEM_PROMPT = "You are a careful, structured assistant that returns ONLY valid JSON."

USER_PROMPT_TEMPLATE = """\
You are an assistant that scores news stories for *positive impact*.

For each article, return a number between -5 and 5:
- 5  = very positive, uplifting, constructive impact
- 2  = somewhat positive / progress / solutions
- 0  = neutral / purely informational
- -2 = somewhat negative, but not panic-level
- -5 = strongly negative, fear-inducing, about harm, conflict, disaster

Guidelines:
- Penalize stories about death, violence, war, scams, corruption, layoffs, disasters.
- Reward stories about innovation, solutions, people being helped, sustainability, collaboration.
- Politics is allowed, but only score it positive if it clearly improves people's lives in a tangible way.

Return ONLY valid JSON of the form:
{{ "scores": [s0, s1, s2, ...] }}

Where scores[i] is the score for articles[i].

Here are the articles (array of objects):
{articles_json}"""


class ScoringError(Exception):
    """The model's reply could not be turned into scores."""


class ScoreParseError(ScoringError):
    def __init__(self, content: str):
        super().__init__("AI response parsing failed")
        self.content = content


class MissingScoresError(ScoringError):
    def __init__(self):
        super().__init__("AI did not return scores[]")


# -----------------------------
# Helper functions
# -----------------------------
def normalize_articles(articles: Sequence[Any]) -> List[ScoringArticle]:
    items: List[ScoringArticle] = []
    for idx, raw in enumerate(articles[:MAX_ARTICLES]):
        if raw is None:
            raise TypeError(f"article {idx} is null")
        fields = raw if isinstance(raw, Mapping) else {}
        items.append(ScoringArticle(index=idx, **{k: fields.get(k) for k in ARTICLE_FIELDS}))
    return items


def build_messages(articles: List[ScoringArticle]) -> List[Dict[str, str]]:
    articles_json = json.dumps(
        [a.model_dump() for a in articles], indent=2, ensure_ascii=False
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_TEMPLATE.format(articles_json=articles_json).strip()},
    ]


def _reject_constant(name: str) -> Any:
    # NaN / Infinity are not JSON
    raise ValueError(f"invalid JSON constant {name}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_scores(content: Optional[str], count: int) -> List[Score]:
    """
    Turn the model's JSON reply into exactly `count` scores.

    Raises:
        ScoreParseError: content is not valid JSON.
        MissingScoresError: JSON has no `scores` array.
    """
    raw = content or "{}"
    try:
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as e:
        logger.error(f"Failed to parse AI JSON: {e}; content={raw!r}")
        raise ScoreParseError(raw) from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("scores"), list):
        raise MissingScoresError()

    returned = parsed["scores"]
    scores: List[Score] = []
    for i in range(count):
        value = returned[i] if i < len(returned) else None
        scores.append(value if _is_number(value) else 0)
    return scores


# -----------------------------
# Public entrypoint
# -----------------------------
async def score_articles(articles: Sequence[Any], client: CompletionsClient) -> List[Score]:
    limited = normalize_articles(articles)
    content = await client.complete(build_messages(limited), json_mode=True)
    return parse_scores(content, len(limited))
