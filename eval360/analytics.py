"""
Performance analytics over a normalized dataset.

Everything here is a pure function of the dataset produced by
eval360.parser.build_dataset(): calling generate_analytics() twice on the
same input gives identical results.
"""

from eval360.parser import build_metadata

COMPLETED = 'Finalizada'
PENDING = ('Pendiente', 'En curso')

# (lower bound, label), checked top-down
PERFORMANCE_LEVELS = [
    (95, 'Top Performer'),
    (85, 'High Performer'),
    (70, 'Average'),
    (60, 'Needs Improvement'),
]
RISK_LEVELS = [
    (80, 'Low'),
    (65, 'Medium'),
]

STRENGTH_THRESHOLD = 80
IMPROVEMENT_THRESHOLD = 70

OVERALL_COMPLETION_ALERT = 80
TYPE_COMPLETION_ALERT = 70
LOW_SCORE = 70

TYPE_LABELS = {
    'autoevaluacion': 'autoevaluación',
    'descendente': 'descendentes',
    'ascendente': 'ascendentes',
    'pares': 'de pares',
}

FILTER_KEYS = ('area', 'sub_area', 'location')


def _mean(values):
    return sum(values) / len(values) if values else 0


def _completion(evaluations):
    completed = sum(1 for e in evaluations if e['status'] == COMPLETED)
    pending = sum(1 for e in evaluations if e['status'] in PENDING)
    total = len(evaluations)
    return {
        'completed': completed,
        'pending': pending,
        'total': total,
        'completion_rate': (completed / total) * 100 if total > 0 else 0,
    }


def _competency_means(evaluations):
    """Competency name -> {'score', 'feedback_count'} over evaluations."""
    collected = {}
    for evaluation in evaluations:
        for comp in evaluation['competencies']:
            collected.setdefault(comp['competency_name'], []).append(comp['average_score'])
    return {
        name: {'score': round(_mean(scores), 2), 'feedback_count': len(scores)}
        for name, scores in collected.items()
    }


def _strengths(breakdown):
    ranked = sorted(breakdown.items(), key=lambda kv: -kv[1]['score'])
    return [name for name, info in ranked if info['score'] >= STRENGTH_THRESHOLD]


def _improvement_areas(breakdown):
    ranked = sorted(breakdown.items(), key=lambda kv: kv[1]['score'])
    return [name for name, info in ranked if info['score'] < IMPROVEMENT_THRESHOLD]


def performance_level(score):
    for bound, label in PERFORMANCE_LEVELS:
        if score >= bound:
            return label
    return 'Critical'


def risk_level(score, area=None):
    # TODO: area is accepted but unused until per-area risk thresholds are defined
    for bound, label in RISK_LEVELS:
        if score >= bound:
            return label
    return 'High'


def calculate_completion_metrics(data):
    evaluations = data['evaluations']
    meta = data['metadata']
    return {
        'by_type': {
            t: _completion([e for e in evaluations if e['type'] == t])
            for t in meta['evaluation_types']
        },
        'by_area': {
            a: _completion([e for e in evaluations if e['evaluated_area'] == a])
            for a in meta['areas']
        },
        'overall': _completion(evaluations),
    }


def generate_area_comparisons(data):
    """Per-area score summary, best average first. Areas with no scores are omitted."""
    comparisons = []
    for area in data['metadata']['areas']:
        area_employees = [e for e in data['employees'] if e['area'] == area]
        scored = [e for e in area_employees if e['final_score'] is not None]
        if not scored:
            continue
        scores = [e['final_score'] for e in scored]

        top = scored[0]
        for emp in scored[1:]:
            if emp['final_score'] > top['final_score']:
                top = emp

        breakdown = _competency_means(
            [ev for ev in data['evaluations'] if ev['evaluated_area'] == area])

        comparisons.append({
            'area': area,
            'employee_count': len(area_employees),
            'average_score': _mean(scores),
            'score_distribution': {
                'excellent': sum(1 for s in scores if s >= 90),
                'good': sum(1 for s in scores if 80 <= s < 90),
                'average': sum(1 for s in scores if 70 <= s < 80),
                'poor': sum(1 for s in scores if s < 70),
            },
            'top_performer': {'name': top['name'], 'score': top['final_score']},
            'competency_strengths': _strengths(breakdown),
            'competency_weaknesses': _improvement_areas(breakdown),
        })

    return sorted(comparisons, key=lambda c: -c['average_score'])


def employee_competency_scores(data, employee):
    evaluations = [
        ev for ev in data['evaluations']
        if ev['evaluated_name'] == employee['name'] and ev['evaluated_area'] == employee['area']
    ]
    return {name: info['score'] for name, info in _competency_means(evaluations).items()}


def employee_recommendations(employee):
    if employee['final_score'] is not None and employee['final_score'] < LOW_SCORE:
        return ['Requiere plan de mejora inmediato', 'Asignar mentor senior']
    return []


def generate_talent_heat_map(data):
    heat_map = []
    for employee in data['employees']:
        score = employee['final_score']
        if score is None:
            continue
        heat_map.append({
            'employee': employee['name'],
            'area': employee['area'],
            'overall_score': score,
            'performance_level': performance_level(score),
            'competency_scores': employee_competency_scores(data, employee),
            'risk_level': risk_level(score, employee['area']),
            'recommendations': employee_recommendations(employee),
        })
    return sorted(heat_map, key=lambda h: -h['overall_score'])


def analyze_upward_feedback(data):
    """Subordinates' ratings of their managers, grouped by the rated manager."""
    groups = {}
    for evaluation in data['evaluations']:
        if evaluation['type'] == 'ascendente':
            groups.setdefault(evaluation['evaluated_id'], []).append(evaluation)

    analysis = []
    for manager_id, evaluations in groups.items():
        scores = [e['total_score'] for e in evaluations if e['total_score'] is not None]
        if not scores:
            continue
        average = _mean(scores)
        breakdown = _competency_means(evaluations)
        analysis.append({
            'manager_id': manager_id,
            'manager_name': evaluations[0]['evaluated_name'],
            'area': evaluations[0]['evaluated_area'],
            'feedback_count': len(evaluations),
            'average_score': average,
            'competency_breakdown': breakdown,
            'strengths': _strengths(breakdown),
            'improvement_areas': _improvement_areas(breakdown),
            'team_satisfaction': min(100, average),
        })

    return sorted(analysis, key=lambda a: -a['average_score'])


def analyze_peer_evaluations(data):
    pairs = [
        {
            'evaluator': e['evaluator_name'] or 'Anónimo',
            'evaluated': e['evaluated_name'],
            'area': e['evaluated_area'],
            'score': e['total_score'] or 0,
            'completed': e['status'] == COMPLETED,
        }
        for e in data['evaluations'] if e['type'] == 'pares'
    ]
    total = len(pairs)
    completed = sum(1 for p in pairs if p['completed'])

    directed = {(p['evaluator'], p['evaluated']) for p in pairs}
    # a self-pair is not its own reciprocal partner
    reciprocal = sum(
        1 for p in pairs
        if p['evaluator'] != p['evaluated'] and (p['evaluated'], p['evaluator']) in directed
    )

    return {
        'evaluations': pairs,
        'coverage': {
            'requested': total,
            'completed': completed,
            'completion_rate': (completed / total) * 100 if total > 0 else 0,
        },
        'reciprocity': {
            'mutual': reciprocal // 2,
            'one_way': total - reciprocal,
        },
    }


def generate_insights(completion, area_comparisons, heat_map):
    insights = []
    overall = completion['overall']
    if overall['completion_rate'] < OVERALL_COMPLETION_ALERT:
        insights.append(
            f"La tasa de completitud general es del {overall['completion_rate']:.1f}%, "
            f"se recomienda hacer seguimiento para mejorar la participación."
        )

    if area_comparisons:
        top = area_comparisons[0]
        insights.append(
            f"{top['area']} es el área con mejor desempeño promedio "
            f"({top['average_score']:.1f} puntos)."
        )

    top_performers = sum(1 for h in heat_map if h['performance_level'] == 'Top Performer')
    critical = sum(1 for h in heat_map if h['performance_level'] == 'Critical')
    if top_performers:
        insights.append(f"Se identificaron {top_performers} top performers en la organización.")
    if critical:
        insights.append(f"{critical} empleados requieren atención inmediata por bajo desempeño.")
    return insights


def generate_recommendations(completion, upward_feedback):
    recommendations = []
    for eval_type, metrics in completion['by_type'].items():
        if metrics['completion_rate'] < TYPE_COMPLETION_ALERT:
            recommendations.append(
                f"Implementar recordatorios y seguimiento para evaluaciones "
                f"{TYPE_LABELS.get(eval_type, eval_type)} ({metrics['completion_rate']:.1f}% completitud)."
            )

    low_managers = [m for m in upward_feedback if m['average_score'] < LOW_SCORE]
    if low_managers:
        recommendations.append(
            f"{len(low_managers)} líderes necesitan coaching en habilidades de liderazgo.")

    recommendations.append(
        'Implementar planes de desarrollo individualizados basados en los resultados de competencias.')
    recommendations.append(
        'Establecer programas de mentoring entre top performers y empleados en desarrollo.')
    return recommendations


def _as_set(value):
    if value is None or value == '':
        return set()
    if isinstance(value, str):
        return {value}
    return {v for v in value if v}


def apply_filters(data, filters):
    """
    Restrict a dataset to the selected segments.

    filters keys: 'area', 'sub_area', 'location' (match employees) and
    'evaluation_type' (match evaluations). Each value is a string or a
    list of strings; missing or empty keys do not filter. Returns a new
    dataset with recomputed metadata; the input is left untouched.
    """
    filters = filters or {}
    wanted = {k: _as_set(filters.get(k)) for k in FILTER_KEYS}
    types = _as_set(filters.get('evaluation_type'))

    employees = [
        dict(e) for e in data['employees']
        if all(not values or e.get(k) in values for k, values in wanted.items())
    ]
    keys = {(e['name'], e['area']) for e in employees}
    evaluations = [
        ev for ev in data['evaluations']
        if (ev['evaluated_name'], ev['evaluated_area']) in keys
        and (not types or ev['type'] in types)
    ]

    if types:
        best = {}
        for ev in evaluations:
            key = (ev['evaluated_name'], ev['evaluated_area'])
            score = ev['total_score']
            best.setdefault(key, None)
            if score is not None and (best[key] is None or score > best[key]):
                best[key] = score
        employees = [e for e in employees if (e['name'], e['area']) in best]
        for e in employees:
            e['final_score'] = best[(e['name'], e['area'])]

    metadata = build_metadata(employees, evaluations, data['competencies'])
    metadata['segmentations'] = data['metadata'].get('segmentations', [])
    return {
        'employees': employees,
        'evaluations': evaluations,
        'competencies': data['competencies'],
        'sheet_structures': data['sheet_structures'],
        'metadata': metadata,
    }


def generate_analytics(data, filters=None):
    """
    Compute every analysis for a dataset.

    Returns:
        dict with 'completion_metrics', 'area_comparisons',
        'talent_heat_map', 'upward_feedback', 'peer_matrix',
        'insights', 'recommendations'
    """
    if filters:
        data = apply_filters(data, filters)

    completion = calculate_completion_metrics(data)
    area_comparisons = generate_area_comparisons(data)
    heat_map = generate_talent_heat_map(data)
    upward = analyze_upward_feedback(data)

    return {
        'completion_metrics': completion,
        'area_comparisons': area_comparisons,
        'talent_heat_map': heat_map,
        'upward_feedback': upward,
        'peer_matrix': analyze_peer_evaluations(data),
        'insights': generate_insights(completion, area_comparisons, heat_map),
        'recommendations': generate_recommendations(completion, upward),
    }
