"""
seoscope/services/score_calculator.py
Calculates the overall SEO score (0–100) from the check results.
Also generates a human-readable summary string.
"""
from typing import Dict, List, Optional

from ..models import CheckResult


# Weights must sum to 100
WEIGHTS: Dict[str, int] = {
    "meta_tags":       20,
    "https":           15,
    "content":         15,
    "headings":        10,
    "images":          10,
    "mobile_friendly": 10,
    "schema_markup":    5,
    "robots_txt":       5,
    "sitemap":          5,
    "links":            3,
    "hreflang":         2,
}


def calculate_score(checks: Dict[str, CheckResult]) -> Optional[int]:
    """
    Weighted average of the per-check scores. Checks that errored or are
    still pending carry no score and are left out of the weighting, so
    partial results still produce a fair score. None when nothing scored.
    """
    total_weight = 0
    weighted_sum = 0.0

    for name, weight in WEIGHTS.items():
        check = checks.get(name)
        if check is None or check.score is None:
            continue
        total_weight += weight
        weighted_sum += max(0, min(100, check.score)) * weight

    if total_weight == 0:
        return None
    return round(weighted_sum / total_weight)


def _key_issues(checks: Dict[str, CheckResult]) -> List[str]:
    issues = []

    https = checks.get("https")
    if https and https.value is not None and not https.value.uses_https:
        issues.append("no HTTPS")

    meta = checks.get("meta_tags")
    if meta and meta.value is not None:
        if not meta.value.title.value:
            issues.append("missing title")
        if not meta.value.description.value:
            issues.append("missing meta description")

    headings = checks.get("headings")
    if headings and headings.value is not None and headings.value.h1_count != 1:
        issues.append(f"{headings.value.h1_count} <h1> tags")

    images = checks.get("images")
    if images and images.value is not None and images.value.missing_alt_count:
        issues.append(f"{images.value.missing_alt_count} image(s) without alt")

    robots = checks.get("robots_txt")
    if robots and robots.value is not None and robots.value.disallows_all:
        issues.append("robots.txt blocks all crawlers")

    failed = [name for name, c in checks.items() if c.error]
    if failed:
        issues.append(f"{len(failed)} check(s) could not run")
    return issues


def generate_summary(score: Optional[int], checks: Dict[str, CheckResult]) -> str:
    """Generate a short human-readable summary of the analysis."""
    if score is None:
        return "No checks could be scored."
    if score >= 80:
        label = "excellent"
    elif score >= 60:
        label = "good"
    elif score >= 40:
        label = "fair"
    else:
        label = "poor"

    summary = f"Overall SEO health is {label} ({score}/100)."
    issues = _key_issues(checks)
    if issues:
        summary += f" Key issues: {', '.join(issues)}."
    else:
        summary += " No critical issues detected."
    return summary


def score_and_summarize(checks: Dict[str, CheckResult]) -> Dict[str, object]:
    """
    Convenience function: compute score + summary and return them.
    Does NOT mutate anything — caller decides when to write back.
    """
    score = calculate_score(checks)
    return {"overall_score": score, "summary": generate_summary(score, checks)}
