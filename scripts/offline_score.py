#!/usr/bin/env python3
"""
Offline positivity scoring for a saved news feed.

Runs the same scoring pipeline as `POST /positivity-score` (from
`app/scoring.py`) over a whole feed file, batch by batch, and writes a
per-article table plus an aggregate summary. No HTTP server is involved.

-------------------------------------------------------------------------------
Inputs
-------------------------------------------------------------------------------
* --feed-file
  JSON file holding either an array of articles or an object with an
  `articles` array. Article fields are the ones the API accepts
  (title, description, content, category, source, sourceKey).

-------------------------------------------------------------------------------
Outputs
-------------------------------------------------------------------------------
Writes to --out-dir (default: offline_score_results/out):
  * per_article.csv  (index, title, source, category, score, error)
  * summary.json     (score distribution + batch latency)

-------------------------------------------------------------------------------
Usage
-------------------------------------------------------------------------------
OPENAI_API_KEY=... python scripts/offline_score.py \
  --feed-file feed.json \
  --out-dir offline_score_results/out
"""

from __future__ import annotations

import argparse
import asyncio
import json
import statistics as stats
import sys
import time
from pathlib import Path
from typing import Any, List, Optional

import openai
import pandas as pd

# -----------------------------------------------------------------------------
# Path resolution (robust to CWD)
# -----------------------------------------------------------------------------
SCRIPT_PATH = Path(__file__).resolve()
REPO_ROOT = SCRIPT_PATH.parent.parent  # scripts/ -> repo root

# Ensure we can import "app.*" no matter where we run from
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.completions import CompletionsClient, UpstreamError  # noqa: E402
from app.scoring import MAX_ARTICLES, ScoringError, score_articles  # noqa: E402
from app.settings import settings  # noqa: E402


def load_feed(path: Path) -> List[Any]:
    """
    Read the feed file.

    Accepts a bare JSON array or an object with an `articles` array.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("articles")
    if not isinstance(data, list):
        raise SystemExit(f"{path} must hold an array of articles or an object with 'articles'")
    return data


def _field(article: Any, name: str) -> str:
    if isinstance(article, dict):
        return article.get(name) or ""
    return ""


async def score_feed(
    articles: List[Any], client: CompletionsClient, batch_size: int = MAX_ARTICLES
) -> tuple[List[dict], List[float]]:
    """
    Score `articles` in sequential batches.

    A failed batch does not stop the run: its articles get score None and
    the error text.

    Returns:
        (rows, per-batch latencies in seconds)
    """
    rows: List[dict] = []
    latencies: List[float] = []

    for start in range(0, len(articles), batch_size):
        batch = articles[start:start + batch_size]
        t0 = time.time()
        error: Optional[str] = None
        try:
            scores: List[Optional[float]] = list(await score_articles(batch, client))
        except UpstreamError as e:
            scores, error = [None] * len(batch), f"OpenAI API error (HTTP {e.status})"
        except ScoringError as e:
            scores, error = [None] * len(batch), str(e)
        except (openai.APIError, TypeError) as e:
            # connection errors, timeouts, null articles
            scores, error = [None] * len(batch), f"{type(e).__name__}: {e}"
        latencies.append(time.time() - t0)

        for offset, (article, score) in enumerate(zip(batch, scores)):
            rows.append({
                "index": start + offset,
                "title": _field(article, "title"),
                "source": _field(article, "source"),
                "category": _field(article, "category"),
                "score": score,
                "error": error,
            })

    return rows, latencies


def summarize(df: pd.DataFrame, latencies: Optional[List[float]] = None) -> dict:
    """
    Aggregate the per-article table.

    Shares are computed over scored articles only; failed batches only
    count towards `count`.
    """
    scored = df["score"].dropna() if len(df) else pd.Series(dtype=float)

    def share(mask: pd.Series) -> Optional[float]:
        return float(mask.mean()) if len(scored) else None

    return {
        "count": int(len(df)),
        "scored": int(len(scored)),
        "score": {
            "mean": float(scored.mean()) if len(scored) else None,
            "median": float(scored.median()) if len(scored) else None,
            "min": float(scored.min()) if len(scored) else None,
            "max": float(scored.max()) if len(scored) else None,
        },
        "share": {
            "positive": share(scored > 0),
            "neutral": share(scored == 0),
            "negative": share(scored < 0),
        },
        "latency_sec": {"avg_batch": stats.mean(latencies) if latencies else None},
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline positivity scoring for a news feed.")
    parser.add_argument("--feed-file", required=True, help="Path to the feed JSON file")
    parser.add_argument(
        "--out-dir",
        default=str(REPO_ROOT / "offline_score_results" / "out"),
        help="Directory to write per_article.csv and summary.json "
             "(default: offline_score_results/out)",
    )
    parser.add_argument(
        "--limit", type=int, default=0,
        help="Limit number of articles; 0 means all"
    )
    args = parser.parse_args()

    feed_path = Path(args.feed_file).resolve()
    if not feed_path.exists():
        raise SystemExit(f"Feed file not found: {feed_path}")
    if not settings.OPENAI_API_KEY:
        raise SystemExit("OPENAI_API_KEY is not set")

    out_dir = Path(args.out_dir).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    articles = load_feed(feed_path)
    if args.limit and args.limit > 0:
        articles = articles[: args.limit]

    client = CompletionsClient.from_settings(settings)
    rows, latencies = asyncio.run(score_feed(articles, client))

    df = pd.DataFrame(rows, columns=["index", "title", "source", "category", "score", "error"])
    summary = summarize(df, latencies)

    df.to_csv(out_dir / "per_article.csv", index=False)
    (out_dir / "summary.json").write_text(json.dumps(summary, indent=2), encoding="utf-8")

    # Print to console (useful in CI)
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
