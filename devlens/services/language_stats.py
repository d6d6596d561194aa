from typing import Any, Dict, Iterable, List

from ..models.schemas import Language

LANGUAGE_COLORS: Dict[str, str] = {
    "JavaScript": "#f7df1e",
    "TypeScript": "#3178c6",
    "Python": "#3776ab",
    "Java": "#b07219",
    "Go": "#00add8",
    "Rust": "#dea584",
    "C": "#555555",
    "C++": "#f34b7d",
    "C#": "#178600",
    "Ruby": "#701516",
    "PHP": "#4f5d95",
    "Swift": "#f05138",
    "Kotlin": "#a97bff",
    "Scala": "#c22d40",
    "Shell": "#89e051",
    "HTML": "#e34f26",
    "CSS": "#264de4",
    "Vue": "#41b883",
    "Dart": "#00b4ab",
    "Elixir": "#6e4a7e",
}
DEFAULT_COLOR = "#6b7280"
MAX_LANGUAGES = 6


def calculate_language_stats(repos: Iterable[Dict[str, Any]]) -> List[Language]:
    """Weight each language by the summed size of its repositories.

    Repos without a language are skipped; a repo with no size counts as 1.
    Returns the top six languages, heaviest first; equal weights keep the
    order in which the languages were first seen.
    """
    weights: Dict[str, int] = {}
    for repo in repos:
        language = repo.get("language")
        if not language:
            continue
        size = repo.get("size") or 1
        weights[language] = weights.get(language, 0) + size

    total = sum(weights.values())
    if total <= 0:
        return []

    ranked = sorted(weights.items(), key=lambda kv: kv[1], reverse=True)[:MAX_LANGUAGES]
    return [
        Language(name=name, percentage=(weight / total) * 100, color=LANGUAGE_COLORS.get(name, DEFAULT_COLOR))
        for name, weight in ranked
    ]


def format_language_stats(languages: List[Language]) -> str:
    return ", ".join(f"{lang.name}: {lang.percentage:.1f}%" for lang in languages)
