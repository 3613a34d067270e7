"""
Keyword Clustering Agent
-------------------------
TF-IDF keyword extraction and post clustering for one brand+platform.

  1. Tokenise (URLs, @mentions and punctuation stripped, '#' kept,
     tokens < 3 chars, digits and ID/EN stop-words dropped)
  2. tf(t, d)  = count(t, d) / |d|
     idf(t)    = ln(N / df(t))
  3. Vocabulary = top 15 terms by Σ_d tf·idf
  4. Each post joins the vocabulary keyword that matches most of its
     tokens (substring match in either direction)
  5. Clusters with < 3 posts are dropped
  6. Related keywords, average engagement and a theme label per cluster
  7. Clusters sorted by size, ids assigned in that order

Deterministic for a given post order: ties always resolve to first appearance.

Input:  List[RawPost]
Output: BrandKeywordAnalysis
"""

import re
import logging
import numpy as np
from collections import Counter
from typing import Dict, List, Optional, Tuple

from sklearn.feature_extraction.text import CountVectorizer

from agents.base import Agent
from config.settings import settings
from models.schemas import (
    BrandAnalysisData, BrandKeywordAnalysis, KeywordCluster, RawPost, TopKeyword,
)

logger = logging.getLogger(__name__)


# ─── Tokenisation ────────────────────────────────────────────────────────────


INDONESIAN_STOPWORDS = {
    "yang", "dan", "di", "dari", "ini", "itu", "dengan", "untuk", "pada", "ke",
    "adalah", "oleh", "tidak", "dalam", "ada", "akan", "juga", "saya", "kamu",
    "dia", "mereka", "kami", "kita", "atau", "tetapi", "karena", "jika", "sudah",
    "belum", "dapat", "bisa", "harus", "sangat", "lebih", "paling", "saat", "waktu",
    "bagi", "sebagai", "sebuah", "suatu", "seperti", "nya", "lah", "kah", "tah",
    "telah", "masih", "maka", "serta", "antara", "sambil", "tanpa", "agar",
}

ENGLISH_STOPWORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "are", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "may", "might", "must", "can", "this", "that", "these", "those", "i", "you",
    "he", "she", "it", "we", "they", "them", "their", "what", "which", "who",
    "when", "where", "why", "how", "all", "each", "every", "both", "few", "more",
    "most", "other", "some", "such", "no", "nor", "not", "only", "own", "same",
    "so", "than", "too", "very", "just", "about", "get", "got", "like", "rt", "via",
}

STOPWORDS = INDONESIAN_STOPWORDS | ENGLISH_STOPWORDS

_URL_RE = re.compile(r"https?://\S+")
_MENTION_RE = re.compile(r"@\w+")
_PUNCT_RE = re.compile(r"[^\w\s#]")


def tokenize(text: str) -> List[str]:
    text = (text or "").lower()
    text = _URL_RE.sub("", text)
    text = _MENTION_RE.sub("", text)
    text = _PUNCT_RE.sub(" ", text)
    return [
        w for w in text.split()
        if len(w) > 2 and w not in STOPWORDS and not w.isdigit()
    ]


# ─── Themes ──────────────────────────────────────────────────────────────────


THEME_RULES: List[Tuple[str, "re.Pattern"]] = [
    ("Product Launch & Features", re.compile(r"produk|product|launch|new|baru|rilis")),
    ("Promotions & Offers", re.compile(r"promo|diskon|sale|discount|offer|deal")),
    ("Customer Service", re.compile(r"service|pelayanan|help|bantuan|support")),
    ("Events & Campaigns", re.compile(r"event|acara|festival|celebration")),
    ("Brand Positioning", re.compile(r"brand|quality|kualitas|best|terbaik")),
    ("Community Engagement", re.compile(r"community|komunitas|fans|followers|love")),
]
DEFAULT_THEME = "General Discussion"


def infer_theme(keywords: List[str]) -> str:
    joined = " ".join(keywords).lower()
    for theme, pattern in THEME_RULES:
        if pattern.search(joined):
            return theme
    return DEFAULT_THEME


# ─── TF-IDF ──────────────────────────────────────────────────────────────────


def tfidf_vocabulary(documents: List[List[str]], top_n: int) -> List[str]:
    """Top `top_n` terms by aggregate TF-IDF; equal scores keep first-appearance order."""
    first_seen: Dict[str, int] = {}
    for doc in documents:
        for token in doc:
            first_seen.setdefault(token, len(first_seen))
    if not first_seen:
        return []

    vectorizer = CountVectorizer(analyzer=lambda doc: doc)
    counts = vectorizer.fit_transform(documents).toarray().astype(float)
    terms = vectorizer.get_feature_names_out()

    n_docs = len(documents)
    doc_len = counts.sum(axis=1, keepdims=True)
    tf = np.divide(counts, doc_len, out=np.zeros_like(counts), where=doc_len > 0)
    df = np.maximum((counts > 0).sum(axis=0), 1)
    idf = np.log(n_docs / df)
    scores = np.round((tf * idf).sum(axis=0), 12)

    ranked = sorted(range(len(terms)), key=lambda i: (-scores[i], first_seen[terms[i]]))
    return [str(terms[i]) for i in ranked[:top_n]]


# ─── Clustering ──────────────────────────────────────────────────────────────


def primary_keyword(tokens: List[str], vocabulary: List[str]) -> Optional[str]:
    """Vocabulary keyword matching most tokens; the first one wins a tie."""
    best, best_count = None, 0
    for keyword in vocabulary:
        count = sum(1 for t in tokens if keyword in t or t in keyword)
        if count > best_count:
            best, best_count = keyword, count
    return best


def cluster_posts(
    posts: List[RawPost],
    documents: List[List[str]],
    vocabulary: List[str],
    min_size: int,
    related_n: int,
) -> List[KeywordCluster]:
    groups: Dict[str, List[int]] = {}
    for idx, tokens in enumerate(documents):
        keyword = primary_keyword(tokens, vocabulary)
        if keyword:
            groups.setdefault(keyword, []).append(idx)

    surviving = [(k, members) for k, members in groups.items() if len(members) >= min_size]
    surviving.sort(key=lambda item: len(item[1]), reverse=True)

    clusters = []
    for cluster_id, (keyword, members) in enumerate(surviving):
        token_counts = Counter()
        for idx in members:
            token_counts.update(documents[idx])
        related = tuple(t for t, _ in token_counts.most_common(related_n))
        total_engagement = sum(posts[idx].engagement for idx in members)
        clusters.append(KeywordCluster(
            cluster_id=cluster_id,
            main_keyword=keyword,
            related_keywords=related,
            post_count=len(members),
            avg_engagement=round(total_engagement / len(members), 2),
            theme=infer_theme(list(related)),
            posts=tuple(posts[idx] for idx in members),
        ))
    return clusters


def keyword_stats(
    posts: List[RawPost], documents: List[List[str]], vocabulary: List[str], top_n: int
) -> List[TopKeyword]:
    vocab = set(vocabulary)
    stats: Dict[str, List[int]] = {}
    for post, tokens in zip(posts, documents):
        for token in tokens:
            if token in vocab:
                entry = stats.setdefault(token, [0, 0])
                entry[0] += 1
                entry[1] += post.engagement
    ranked = sorted(stats.items(), key=lambda item: item[1][0], reverse=True)
    return [
        TopKeyword(keyword=k, frequency=freq, avg_engagement=round(eng / freq, 2))
        for k, (freq, eng) in ranked[:top_n]
    ]


def select_recent(posts: List[RawPost], limit: int) -> List[RawPost]:
    """Most recent first; undated posts last; provider order breaks ties."""
    dated = sorted(
        (p for p in posts if p.published_at is not None),
        key=lambda p: p.published_at,
        reverse=True,
    )
    undated = [p for p in posts if p.published_at is None]
    return (dated + undated)[:limit]


def analyze_posts_by_keywords(
    posts: List[RawPost],
    brand: str,
    platform: str,
    max_posts: Optional[int] = None,
    vocabulary_size: Optional[int] = None,
    min_cluster_size: Optional[int] = None,
) -> BrandKeywordAnalysis:
    max_posts = max_posts if max_posts is not None else settings.KEYWORD_MAX_POSTS
    vocabulary_size = vocabulary_size if vocabulary_size is not None else settings.KEYWORD_VOCABULARY_SIZE
    min_cluster_size = min_cluster_size if min_cluster_size is not None else settings.MIN_CLUSTER_SIZE

    recent = select_recent(posts, max_posts)
    if not recent:
        return BrandKeywordAnalysis(brand=brand, platform=platform)

    documents = [tokenize(p.text) for p in recent]
    vocabulary = tfidf_vocabulary(documents, vocabulary_size)
    clusters = cluster_posts(
        recent, documents, vocabulary, min_cluster_size, settings.RELATED_KEYWORDS
    )
    themes = list(dict.fromkeys(c.theme for c in clusters))

    return BrandKeywordAnalysis(
        brand=brand,
        platform=platform,
        total_posts=len(recent),
        top_keywords=keyword_stats(recent, documents, vocabulary, settings.TOP_KEYWORDS),
        clusters=clusters,
        conversation_themes=themes,
    )


# ─── KeywordClusteringAgent ──────────────────────────────────────────────────


class KeywordClusteringAgent(Agent):
    """
    Keyword clustering across every brand+platform with posts.

    Input:  List[BrandAnalysisData]
    Output: List[BrandKeywordAnalysis]  (only analyses with ≥1 cluster)
    """

    def __init__(self, max_posts: Optional[int] = None, min_cluster_size: Optional[int] = None):
        super().__init__(name="KeywordClusteringAgent")
        self.max_posts = max_posts
        self.min_cluster_size = min_cluster_size

    def run(self, brand_data: List[BrandAnalysisData]) -> List[BrandKeywordAnalysis]:
        analyses = []
        for brand in brand_data:
            for platform, snapshot in brand.platforms.items():
                if not snapshot.raw_posts:
                    continue
                analysis = analyze_posts_by_keywords(
                    snapshot.raw_posts, brand.name, platform,
                    max_posts=self.max_posts, min_cluster_size=self.min_cluster_size,
                )
                self.logger.info(
                    f"  📝 {brand.name}/{platform}: {len(analysis.clusters)} clusters "
                    f"from {analysis.total_posts} posts"
                )
                if analysis.clusters:
                    analyses.append(analysis)
        return analyses
