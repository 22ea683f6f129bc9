"""
Score and grade calculation for assessment schemas

Pure functions over plain values, so they can be used for previews and
tested without a database.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

# (grade, minimum percentage, grade point, description)
DEFAULT_GRADE_SCALE = [
    ('A1', 91, 10.0, 'Outstanding'),
    ('A2', 81, 9.0, 'Excellent'),
    ('B1', 71, 8.0, 'Very Good'),
    ('B2', 61, 7.0, 'Good'),
    ('C1', 51, 6.0, 'Above Average'),
    ('C2', 41, 5.0, 'Average'),
    ('D', 33, 4.0, 'Pass'),
    ('E', 0, 0.0, 'Needs Improvement'),
]


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def component_score(raw_score, raw_max_score, reduced_score) -> Decimal:
    """Raw marks scaled to the component's reduced score"""
    raw_max = _dec(raw_max_score)
    if raw_max <= 0:
        raise ValueError("raw_max_score must be positive")
    return _dec(raw_score) / raw_max * _dec(reduced_score)


def calculate_result(components: Sequence[Dict[str, Any]], raw_scores: Dict[int, Any],
                     total_marks) -> Dict[str, Any]:
    """
    Weighted result of one student

    Args:
        components: dicts with id, name, raw_max_score, reduced_score, weightage
        raw_scores: component id -> raw score
        total_marks: schema total used for the percentage

    Returns:
        dict with component_scores, final_score, final_percentage and errors
        naming the components without a score
    """
    errors: List[str] = []
    breakdown = []
    weighted_sum = Decimal('0')
    weight_total = Decimal('0')

    for component in components:
        raw = raw_scores.get(component['id'])
        if raw is None:
            errors.append(f"Missing score for {component['name']}")
            continue
        score = component_score(raw, component['raw_max_score'], component['reduced_score'])
        weight = _dec(component.get('weightage', 1))
        weighted_sum += score * weight
        weight_total += weight
        breakdown.append({
            'component_id': component['id'],
            'name': component['name'],
            'raw_score': float(_dec(raw)),
            'score': round(float(score), 2),
            'weightage': float(weight),
        })

    final_score = weighted_sum / weight_total if weight_total else Decimal('0')
    total = _dec(total_marks)
    final_percentage = final_score / total * 100 if total > 0 else Decimal('0')

    return {
        'component_scores': breakdown,
        'final_score': round(float(final_score), 2),
        'final_percentage': round(float(final_percentage), 2),
        'errors': errors,
    }


def grade_for(percentage, ranges: Optional[Iterable[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """
    Grade of a percentage

    With custom ranges the one containing the percentage wins ('N/A' when
    none does); without, the default CBSE-style scale applies.
    """
    pct = _dec(percentage)
    if ranges is not None:
        for r in ranges:
            if _dec(r['min_percentage']) <= pct <= _dec(r['max_percentage']):
                return {
                    'grade': r['grade'],
                    'grade_point': r.get('grade_point'),
                    'description': r.get('description'),
                }
        return {'grade': 'N/A', 'grade_point': None, 'description': None}

    for grade, minimum, point, description in DEFAULT_GRADE_SCALE:
        if pct >= minimum:
            return {'grade': grade, 'grade_point': point, 'description': description}
    return {'grade': 'E', 'grade_point': 0.0, 'description': 'Needs Improvement'}


def find_overlap(ranges: Sequence[Dict[str, Any]]) -> Optional[str]:
    """Describe the first pair of overlapping ranges, or None"""
    ordered = sorted(ranges, key=lambda r: _dec(r['min_percentage']))
    for previous, current in zip(ordered, ordered[1:]):
        if _dec(current['min_percentage']) <= _dec(previous['max_percentage']):
            return f"Grade {current['grade']} overlaps grade {previous['grade']}"
    return None
