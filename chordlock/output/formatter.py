"""Result formatting - Plain text and JSON views of chord candidates."""

import json
from typing import Any, Dict, List, Optional

from ..core.pitch import mask_to_names, note_name
from ..inference.candidates import ChordCandidate
from ..inference.key import KeyContext, FunctionalHarmony


def candidate_to_dict(
    candidate: ChordCandidate,
    key: Optional[KeyContext] = None,
    detailed: bool = False,
) -> Dict[str, Any]:
    """
    Convert a candidate to a JSON-serializable dict.

    Args:
        candidate: Chord reading to convert
        key: Optional key context; adds a roman numeral
        detailed: Include diagnostic fields (inversion, missing/extra notes, ...)

    Returns:
        Dict with name, confidence, root and bass, plus diagnostics when detailed
    """
    data: Dict[str, Any] = {
        "name": candidate.name,
        "confidence": round(candidate.confidence, 4),
        "root": candidate.root_name,
        "bass": candidate.bass_name,
        "notes": mask_to_names(candidate.mask),
    }
    if key is not None and key.is_active:
        data["roman"] = FunctionalHarmony(key).roman_numeral(candidate.root, candidate.flags)

    if detailed:
        data.update({
            "quality": candidate.quality,
            "interpretation": candidate.interpretation,
            "is_inversion": candidate.is_inversion,
            "inversion_degree": candidate.inversion_degree,
            "is_slash": candidate.is_slash,
            "missing_notes": [note_name(pc) for pc in candidate.missing_notes],
            "extra_notes": [note_name(pc) for pc in candidate.extra_notes],
            "match_score": round(candidate.match_score, 4),
            "extensions": candidate.extensions.tokens,
        })
    return data


def result_to_dict(
    candidates: List[ChordCandidate],
    notes: Optional[List[int]] = None,
    key: Optional[KeyContext] = None,
    detailed: bool = False,
) -> Dict[str, Any]:
    """Detection result: best chord plus alternatives."""
    best = candidates[0] if candidates else None
    result: Dict[str, Any] = {
        "chord": best.name if best else None,
        "confidence": round(best.confidence, 4) if best else 0.0,
        "candidates": [candidate_to_dict(c, key, detailed) for c in candidates],
    }
    if notes is not None:
        result["notes"] = list(notes)
    if key is not None and key.is_active:
        result["key"] = key.name
    return result


def result_to_json(
    candidates: List[ChordCandidate],
    notes: Optional[List[int]] = None,
    key: Optional[KeyContext] = None,
    detailed: bool = False,
    indent: Optional[int] = 2,
) -> str:
    """Serialize a detection result to a JSON string."""
    return json.dumps(
        result_to_dict(candidates, notes, key, detailed),
        indent=indent,
        ensure_ascii=False,
    )


def format_candidates(candidates: List[ChordCandidate], detailed: bool = False) -> str:
    """One line per candidate, e.g. '1. Cmaj7 (8.12)'."""
    if not candidates:
        return "No chord detected"
    lines = []
    for i, candidate in enumerate(candidates, 1):
        line = f"{i}. {candidate.name} ({candidate.confidence:.2f})"
        if detailed:
            line += f" [{candidate.interpretation}]"
            if candidate.is_inversion:
                line += f" inversion {candidate.inversion_degree}"
            if candidate.missing_notes:
                line += " missing " + ",".join(note_name(pc) for pc in candidate.missing_notes)
            if candidate.extra_notes:
                line += " extra " + ",".join(note_name(pc) for pc in candidate.extra_notes)
        lines.append(line)
    return "\n".join(lines)


def statistics_to_dict(stats) -> Dict[str, Any]:
    """JSON-ready view of a detector's DetectionStatistics."""
    return {
        "total_detections": stats.total_detections,
        "successful_detections": stats.successful_detections,
        "success_rate": round(stats.success_rate, 4),
        "average_detection_ms": round(stats.average_detection_ms, 4),
        "average_confidence": round(stats.average_confidence, 4),
    }
