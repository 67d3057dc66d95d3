"""
Feedback analysis over a user's prompt history.

Extracts keyword patterns from liked and disliked prompts and turns them into
prompt suggestions, a 0-100 prompt score and feedback trends.
"""

# Standard library imports
import re
from dataclasses import dataclass
from typing import Dict, List

# Local imports
from pixolink.core.codex import Feedback, now_ms
from pixolink.libs.prompt_memory import PromptEntry, PromptMemoryStore

STOP_WORDS = frozenset({
    'a', 'an', 'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of',
    'with', 'by', 'from', 'as', 'is', 'was', 'are', 'were', 'be', 'been', 'being',
})
MAX_PATTERNS = 20
MAX_SUGGESTIONS = 5
DAY_MS = 24 * 60 * 60 * 1000

_NON_ALNUM = re.compile(r'[^a-z0-9\s]')


@dataclass
class PromptPattern:
    """A keyword with how often it appears and its mean feedback (-1..1)."""
    keyword: str
    frequency: int
    avg_feedback: float


def extract_keywords(prompt: str) -> List[str]:
    """Lowercased words longer than two characters that are not stop words."""
    cleaned = _NON_ALNUM.sub(' ', prompt.lower())
    return [word for word in cleaned.split() if len(word) > 2 and word not in STOP_WORDS]


def _feedback_value(feedback) -> int:
    if feedback is Feedback.LIKED:
        return 1
    if feedback is Feedback.DISLIKED:
        return -1
    return 0


def extract_patterns(prompts: List[PromptEntry]) -> List[PromptPattern]:
    """Top keywords by frequency with their average feedback."""
    counts: Dict[str, List[int]] = {}
    for entry in prompts:
        value = _feedback_value(entry.feedback)
        for keyword in extract_keywords(entry.prompt):
            bucket = counts.setdefault(keyword, [0, 0])
            bucket[0] += 1
            bucket[1] += value

    patterns = [
        PromptPattern(keyword=keyword, frequency=count, avg_feedback=total / count if count else 0.0)
        for keyword, (count, total) in counts.items()
    ]
    patterns.sort(key=lambda p: p.frequency, reverse=True)
    return patterns[:MAX_PATTERNS]


class FeedbackEngine:
    """Learns from a user's feedback history held in a PromptMemoryStore."""

    def __init__(self, store: PromptMemoryStore):
        self.store = store

    def analyze_liked_prompts(self, user_id: str) -> List[PromptPattern]:
        return extract_patterns(self.store.get_prompts_by_feedback(user_id, Feedback.LIKED))

    def analyze_disliked_prompts(self, user_id: str) -> List[PromptPattern]:
        return extract_patterns(self.store.get_prompts_by_feedback(user_id, Feedback.DISLIKED))

    def get_suggestions(self, user_id: str, current_prompt: str = "") -> List[str]:
        """Well-liked keywords the current prompt does not use yet."""
        current = set(extract_keywords(current_prompt))
        suggestions: List[str] = []
        for pattern in self.analyze_liked_prompts(user_id):
            if len(suggestions) >= MAX_SUGGESTIONS:
                break
            if pattern.keyword not in current and pattern.avg_feedback > 0.5:
                suggestions.append(pattern.keyword)
        return suggestions

    def calculate_prompt_score(self, user_id: str, prompt: str) -> float:
        """Score from 50, moved by +/-10 times the average feedback of each known keyword."""
        liked = {p.keyword: p for p in self.analyze_liked_prompts(user_id)}
        disliked = {p.keyword: p for p in self.analyze_disliked_prompts(user_id)}

        score = 50.0
        for keyword in extract_keywords(prompt):
            if keyword in liked:
                score += liked[keyword].avg_feedback * 10
            if keyword in disliked:
                score += disliked[keyword].avg_feedback * 10
        return max(0.0, min(100.0, score))

    def get_trends(self, user_id: str, days: int = 7) -> Dict[str, float]:
        """
        Feedback counts over the last ``days`` and the percentage change of the
        like/dislike ratio against the window before it.
        """
        history = self.store.get_history(user_id, limit=1000)
        cutoff = now_ms() - days * DAY_MS
        previous_cutoff = cutoff - days * DAY_MS

        recent = [e for e in history if e.timestamp > cutoff]
        previous = [e for e in history if previous_cutoff < e.timestamp <= cutoff]

        likes = sum(1 for e in recent if e.feedback is Feedback.LIKED)
        dislikes = sum(1 for e in recent if e.feedback is Feedback.DISLIKED)
        neutrals = sum(1 for e in recent if e.feedback in (None, Feedback.NEUTRAL))

        current_ratio = likes / (dislikes or 1)
        prev_likes = sum(1 for e in previous if e.feedback is Feedback.LIKED)
        prev_dislikes = sum(1 for e in previous if e.feedback is Feedback.DISLIKED)
        previous_ratio = prev_likes / (prev_dislikes or 1)

        improvement = ((current_ratio - previous_ratio) / previous_ratio) * 100 if previous_ratio > 0 else 0.0
        return {'likes': likes, 'dislikes': dislikes, 'neutrals': neutrals, 'improvement': improvement}
