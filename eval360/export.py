"""
Export modules: parsed dataset + analytics as JSON, and a CSV table kit
for spreadsheet / BI tools.
"""

import csv
import json
import os


def export_json(result, analytics, output_path):
    """Write the processing result and its analytics to one JSON file."""
    payload = {
        'data': result['data'],
        'analytics': analytics,
        'errors': result['errors'],
        'warnings': result['warnings'],
    }
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    return output_path


def _write_csv(path, header, rows):
    with open(path, 'w', newline='', encoding='utf-8-sig') as f:
        w = csv.writer(f)
        w.writerow(header)
        for row in rows:
            w.writerow(['' if v is None else v for v in row])
    return path


def export_csv(data, analytics, output_dir):
    """
    Export the dataset as flat CSV tables.

    Creates:
      - Employees.csv        — 1 row per employee
      - Evaluations.csv      — 1 row per evaluation
      - CompetencyScores.csv — 1 row per (evaluation, competency)
      - AreaComparison.csv   — 1 row per scored area
      - TalentHeatMap.csv    — 1 row per scored employee
      - Completion.csv       — completion by overall / type / area

    Evaluations.csv and CompetencyScores.csv join on EvaluationID;
    Employees.csv joins Evaluations.csv on (Name, Area).
    """
    os.makedirs(output_dir, exist_ok=True)
    files = []

    files.append(_write_csv(
        os.path.join(output_dir, 'Employees.csv'),
        ['EmployeeID', 'Email', 'Name', 'Area', 'SubArea', 'Location', 'Status', 'FinalScore'],
        [[e['id'], e['email'], e['name'], e['area'], e.get('sub_area'),
          e.get('location'), e['status'], e['final_score']]
         for e in data['employees']],
    ))

    files.append(_write_csv(
        os.path.join(output_dir, 'Evaluations.csv'),
        ['EvaluationID', 'Sheet', 'Type', 'EvaluatedID', 'Name', 'Area',
         'Evaluator', 'Status', 'TotalScore'],
        [[ev['id'], ev['sheet'], ev['type'], ev['evaluated_id'], ev['evaluated_name'],
          ev['evaluated_area'], ev['evaluator_name'], ev['status'], ev['total_score']]
         for ev in data['evaluations']],
    ))

    files.append(_write_csv(
        os.path.join(output_dir, 'CompetencyScores.csv'),
        ['EvaluationID', 'Competency', 'QuestionCount', 'AverageScore'],
        [[ev['id'], comp['competency_name'], len(comp['questions']), comp['average_score']]
         for ev in data['evaluations'] for comp in ev['competencies']],
    ))

    files.append(_write_csv(
        os.path.join(output_dir, 'AreaComparison.csv'),
        ['Area', 'EmployeeCount', 'AverageScore', 'Excellent', 'Good', 'Average', 'Poor',
         'TopPerformer', 'TopScore', 'Strengths', 'Weaknesses'],
        [[c['area'], c['employee_count'], round(c['average_score'], 2),
          c['score_distribution']['excellent'], c['score_distribution']['good'],
          c['score_distribution']['average'], c['score_distribution']['poor'],
          c['top_performer']['name'], c['top_performer']['score'],
          '; '.join(c['competency_strengths']), '; '.join(c['competency_weaknesses'])]
         for c in analytics['area_comparisons']],
    ))

    files.append(_write_csv(
        os.path.join(output_dir, 'TalentHeatMap.csv'),
        ['Employee', 'Area', 'OverallScore', 'PerformanceLevel', 'RiskLevel', 'Recommendations'],
        [[h['employee'], h['area'], h['overall_score'], h['performance_level'],
          h['risk_level'], '; '.join(h['recommendations'])]
         for h in analytics['talent_heat_map']],
    ))

    completion = analytics['completion_metrics']
    rows = [['overall', 'all'] + _completion_cells(completion['overall'])]
    rows += [['type', t] + _completion_cells(m) for t, m in completion['by_type'].items()]
    rows += [['area', a] + _completion_cells(m) for a, m in completion['by_area'].items()]
    files.append(_write_csv(
        os.path.join(output_dir, 'Completion.csv'),
        ['Scope', 'Key', 'Completed', 'Pending', 'Total', 'CompletionRate'],
        rows,
    ))

    return files


def _completion_cells(metrics):
    return [metrics['completed'], metrics['pending'], metrics['total'],
            round(metrics['completion_rate'], 2)]
