"""Map persisted analysis rows of any vintage onto ``AnalysisResult``.

Rows reach this module from several places: the ``analyses`` table, cached
provider payloads, and records written by older releases that used
snake_case column names or stored the whole critique as one JSON blob. Every
field is resolved independently:

1. the canonical camelCase name, then its legacy aliases;
2. for critique fields, the nested provider payload (``aiResponse`` /
   ``ai_response`` / ``analysis_result``), which may be an object or a JSON
   string;
3. the type default.

A candidate only wins if it coerces to something non-empty, except for scores
where any supplied value wins (``0`` is a real score). ``normalize`` never
raises.
"""
import json
import math
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from domain.schemas import AnalysisResult

DEFAULT_TIP = "Share a concise, outcome-focused answer."

_NESTED_KEYS = ("aiResponse", "ai_response", "analysis_result", "analysisResult")

_ALIASES: Dict[str, Sequence[str]] = {
    "id": ("id",),
    "toxicityScore": ("toxicityScore", "toxicity_score"),
    "fitScore": ("fitScore", "fit_score"),
    "atsScore": ("atsScore", "ats_score"),
    "redFlags": ("redFlags", "red_flags"),
    "missingSkills": ("missingSkills", "missing_skills"),
    "interviewQuestions": ("interviewQuestions", "interview_questions", "questions"),
    "summary": ("summary",),
    "extractedText": ("extractedText", "extracted_text", "resume_text", "resumeText"),
    "status": ("status",),
    "createdAt": ("createdAt", "created_at"),
    "updatedAt": ("updatedAt", "updated_at"),
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def stable_json(value: Any) -> str:
    try:
        return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)
    except RecursionError:
        return f"<{type(value).__name__}>"


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Mapping, list, tuple)):
        return stable_json(value)
    return str(value)


def _to_score(value: Any) -> int:
    if isinstance(value, bool):
        score = 0
    elif isinstance(value, int):
        score = value
    elif isinstance(value, float):
        score = int(value) if math.isfinite(value) else 0
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        score = int(match.group(1)) if match else 0
    else:
        score = 0
    return max(0, min(100, score))


def _as_items(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return [item for item in value if item is not None]
    if isinstance(value, str) and not value.strip():
        return []
    # single object / bare scalar where a sequence was expected
    return [value]


def _to_red_flags(value: Any) -> List[Dict[str, str]]:
    flags = []
    for item in _as_items(value):
        if isinstance(item, Mapping) and "text" in item:
            meaning = item.get("meaning")
            if meaning is None:
                meaning = item.get("reason")
            flags.append({"text": _to_str(item.get("text")), "meaning": _to_str(meaning)})
        else:
            flags.append({"text": _to_str(item), "meaning": ""})
    return flags


def _to_skills(value: Any) -> List[str]:
    return [_to_str(item) for item in _as_items(value)]


def _to_questions(value: Any) -> List[Dict[str, str]]:
    questions = []
    for item in _as_items(value):
        if isinstance(item, Mapping) and "question" in item:
            tip = _to_str(item.get("tip")) or DEFAULT_TIP
            questions.append({"question": _to_str(item.get("question")), "tip": tip})
        else:
            questions.append({"question": _to_str(item), "tip": DEFAULT_TIP})
    return questions


def _nested_payload(row: Mapping) -> Dict[str, Any]:
    for key in _NESTED_KEYS:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except (ValueError, RecursionError):
                return {}
        return dict(value) if isinstance(value, Mapping) else {}
    return {}


def _ai_response(row: Mapping) -> str:
    for key in _NESTED_KEYS:
        value = row.get(key)
        if value is not None:
            return _to_str(value)
    return ""


def _candidates(field: str, row: Mapping, nested: Optional[Mapping]) -> List[Any]:
    sources = [row] if nested is None else [row, nested]
    return [
        source.get(name)
        for source in sources
        for name in _ALIASES[field]
        if source.get(name) is not None
    ]


def _pick(field: str, row: Mapping, nested: Optional[Mapping], coerce: Callable, default: Any) -> Any:
    for candidate in _candidates(field, row, nested):
        value = coerce(candidate)
        if value:
            return value
    return default


def _pick_score(field: str, row: Mapping, nested: Mapping) -> int:
    for candidate in _candidates(field, row, nested):
        if isinstance(candidate, str) and not candidate.strip():
            continue
        return _to_score(candidate)
    return 0


def normalize(raw: Any) -> AnalysisResult:
    row: Mapping = raw if isinstance(raw, Mapping) else {}
    nested = _nested_payload(row)

    return AnalysisResult(
        id=_pick("id", row, None, _to_str, ""),
        toxicityScore=_pick_score("toxicityScore", row, nested),
        fitScore=_pick_score("fitScore", row, nested),
        atsScore=_pick_score("atsScore", row, nested),
        redFlags=_pick("redFlags", row, nested, _to_red_flags, []),
        missingSkills=_pick("missingSkills", row, nested, _to_skills, []),
        interviewQuestions=_pick("interviewQuestions", row, nested, _to_questions, []),
        summary=_pick("summary", row, nested, _to_str, ""),
        aiResponse=_ai_response(row),
        extractedText=_pick("extractedText", row, None, _to_str, ""),
        status=_pick("status", row, None, _to_str, ""),
        createdAt=_pick("createdAt", row, None, _to_str, ""),
        updatedAt=_pick("updatedAt", row, None, _to_str, ""),
    )


def to_canonical_row(result: AnalysisResult) -> Dict[str, Any]:
    return result.model_dump()
