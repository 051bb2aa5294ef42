"""
Flask server — accepts workbook uploads and serves the parsed dataset,
analytics and exports to the dashboard front end.
"""

import io
import json
import os
import tempfile
import zipfile

from flask import Flask, Response, request, send_file

from eval360.analytics import apply_filters, generate_analytics
from eval360.export import export_csv
from eval360.parser import process_workbooks
from eval360.segmentation import SEGMENT_KINDS, segmentation_values


def _json(payload, status=200):
    return Response(
        json.dumps(payload, ensure_ascii=False),
        status=status,
        mimetype='application/json'
    )


def _query_filters(args):
    filters = {}
    for key in ('area', 'sub_area', 'location'):
        values = args.getlist(key)
        if values:
            filters[key] = values
    types = args.getlist('type')
    if types:
        filters['evaluation_type'] = types
    return filters


def create_app(initial_result=None):
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50 MB max upload

    # Last successful processing result
    app.eval_result = initial_result

    @app.route('/api/data')
    def get_data():
        if app.eval_result is None:
            return _json({'error': 'No hay datos cargados. Suba un archivo.'}, status=404)
        result = app.eval_result
        return _json({
            'data': result['data'],
            'analytics': generate_analytics(result['data']),
            'warnings': result['warnings'],
            'errors': result['errors'],
        })

    @app.route('/api/upload', methods=['POST'])
    def upload():
        f = request.files.get('evaluations')
        if f is None or not f.filename:
            return _json({'error': 'No se recibió el archivo de evaluaciones'}, status=400)

        seg = request.files.get('segmentations')
        seg_bytes, seg_name = None, None
        if seg is not None and seg.filename:
            seg_bytes, seg_name = seg.read(), seg.filename

        try:
            result = process_workbooks(f.read(), f.filename, seg_bytes, seg_name)
        except Exception as e:
            app.logger.exception("Upload processing failed")
            return _json({'error': f'Error al procesar el archivo: {e}'}, status=500)

        if not result['success']:
            return _json({
                'success': False,
                'errors': result['errors'],
                'warnings': result['warnings'],
            }, status=422)

        app.eval_result = result
        return _json({
            'success': True,
            'data': result['data'],
            'analytics': generate_analytics(result['data']),
            'errors': result['errors'],
            'warnings': result['warnings'],
        })

    @app.route('/api/analytics')
    def get_analytics():
        """Analytics for the current dataset, restricted by query-string filters."""
        if app.eval_result is None:
            return _json({'error': 'No hay datos cargados. Suba un archivo.'}, status=404)
        filters = _query_filters(request.args)
        return _json(generate_analytics(app.eval_result['data'], filters))

    @app.route('/api/segmentations/<kind>')
    def get_segmentation_values(kind):
        if app.eval_result is None:
            return _json({'error': 'No hay datos cargados. Suba un archivo.'}, status=404)
        if kind not in SEGMENT_KINDS:
            return _json({'error': f'Segmentación desconocida: {kind}'}, status=404)
        users = (app.eval_result.get('segmentation') or {}).get('users', {})
        return _json({'kind': kind, 'values': segmentation_values(users, kind)})

    @app.route('/api/export/csv', methods=['POST'])
    def export_csv_endpoint():
        """Export the CSV table kit as a ZIP file. Accepts filters as POST JSON body."""
        if app.eval_result is None:
            return _json({'error': 'No data'}, status=400)
        filters = request.get_json(silent=True) or {}
        data = apply_filters(app.eval_result['data'], filters)
        analytics = generate_analytics(data)

        with tempfile.TemporaryDirectory() as tmpdir:
            files = export_csv(data, analytics, tmpdir)
            # Create ZIP in memory
            buf = io.BytesIO()
            with zipfile.ZipFile(buf, 'w', zipfile.ZIP_DEFLATED) as zf:
                for fp in files:
                    zf.write(fp, os.path.basename(fp))
            buf.seek(0)
        return send_file(
            buf,
            mimetype='application/zip',
            as_attachment=True,
            download_name='evaluacion-360.zip'
        )

    return app


def run_server(result, host='127.0.0.1', port=8080):
    app = create_app(initial_result=result)
    app.run(host=host, port=port, debug=False)
