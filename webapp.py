#!/usr/bin/env python3
"""
Flask Web UI for the inactivity remediation tool
Upload an account export, preview or run remediation, download the results
"""

import os
import logging
import uuid
from pathlib import Path
from datetime import datetime
from flask import Flask, render_template, request, redirect, url_for, send_file, flash, jsonify
from werkzeug.utils import secure_filename

from core.exceptions import ConfigurationError
from core.factory import build_engine
from processors.import_source import ImportProcessor
from utils.config import Config

app = Flask(__name__)
app.secret_key = os.environ.get('FLASK_SECRET_KEY', 'change-this-secret-key')

# Configuration
UPLOAD_FOLDER = 'uploads'
OUTPUT_FOLDER = 'downloads'
ALLOWED_EXTENSIONS = {'csv'}
MAX_FILE_SIZE = 16 * 1024 * 1024  # 16MB max file size

os.makedirs(UPLOAD_FOLDER, exist_ok=True)
os.makedirs(OUTPUT_FOLDER, exist_ok=True)

OUTPUT_DESCRIPTIONS = {
    'results': 'Per-account results',
    'unprocessed': 'Unprocessed accounts (upload again to retry)',
    'json': 'Full run result (JSON)',
    'excel': 'Excel report with results, summary and unprocessed sheets',
}


def allowed_file(filename):
    """Check if file extension is allowed"""
    if '.' not in filename:
        return False
    return filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def setup_logging():
    """Setup logging for the web application"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"webapp_{timestamp}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename),
            logging.StreamHandler()
        ]
    )


@app.route('/')
def index():
    """Main page with upload form"""
    return render_template('index.html')


@app.route('/upload', methods=['POST'])
def upload_file():
    """Handle file upload and processing"""
    if 'file' not in request.files:
        flash('No file selected', 'error')
        return redirect(url_for('index'))

    file = request.files['file']
    live_run = request.form.get('live_run') == 'on'
    enable_deletion = request.form.get('enable_deletion') == 'on'

    if file.filename == '':
        flash('No file selected', 'error')
        return redirect(url_for('index'))

    if not allowed_file(file.filename):
        flash('Invalid file type. Upload a CSV export', 'error')
        return redirect(url_for('index'))

    # Check file size
    file.seek(0, 2)
    file_size = file.tell()
    file.seek(0)

    if file_size > MAX_FILE_SIZE:
        flash(f'File too large. Maximum size: {MAX_FILE_SIZE // (1024 * 1024)}MB', 'error')
        return redirect(url_for('index'))

    job_id = str(uuid.uuid4())
    filename = secure_filename(file.filename)
    input_path = os.path.join(UPLOAD_FOLDER, f"{job_id}_{filename}")
    file.save(input_path)

    result = process_file(job_id, input_path, live_run, enable_deletion)

    if 'run' not in result:
        flash(f'Processing failed: {result["error"]}', 'error')
        return redirect(url_for('index'))

    return render_template('results.html',
                           job_id=job_id,
                           live_run=live_run,
                           run=result['run'],
                           output_files=result.get('output_files', []),
                           output_error=result.get('output_error'))


def process_file(job_id, input_path, live_run, enable_deletion):
    """Run the uploaded export through the engine"""
    try:
        app.logger.info(f"Starting job {job_id} ({'live' if live_run else 'preview'})")

        config = Config()
        try:
            engine = build_engine(
                config,
                dry_run=not live_run,
                deletion_enabled=True if enable_deletion else None
            )
        except ConfigurationError as e:
            return {'error': str(e)}

        processor = ImportProcessor(engine, input_path)
        processor.output_prefix = f"{job_id}_import"
        run = processor.process_accounts(OUTPUT_FOLDER)

        output_files = [
            {
                'filename': os.path.basename(path),
                'path': path,
                'description': OUTPUT_DESCRIPTIONS.get(kind, kind)
            }
            for kind, path in processor.output_paths.items()
        ]

        app.logger.info(f"Job {job_id} finished, success={run.success}")
        return {'run': run.to_dict(), 'output_files': output_files, 'output_error': processor.output_error}

    finally:
        try:
            if os.path.exists(input_path):
                os.remove(input_path)
        except OSError as e:
            app.logger.warning(f"Could not remove upload {input_path}: {e}")


@app.route('/download/<filename>')
def download_file(filename):
    """Download a generated file"""
    file_path = os.path.join(OUTPUT_FOLDER, secure_filename(filename))
    if not os.path.exists(file_path):
        flash('File not found', 'error')
        return redirect(url_for('index'))

    return send_file(os.path.abspath(file_path), as_attachment=True)


@app.route('/health')
def health_check():
    """Health check endpoint"""
    config = Config()
    ad_config_valid = config.validate_ad_config()
    graph_config_valid = config.validate_graph_config()

    return jsonify({
        'status': 'healthy' if (ad_config_valid or graph_config_valid) else 'configuration_error',
        'ad_config_valid': ad_config_valid,
        'graph_config_valid': graph_config_valid,
        'mail_sender_configured': bool(config.mail_sender)
    })


if __name__ == '__main__':
    setup_logging()

    config = Config()
    if not config.validate_ad_config():
        app.logger.warning(f"Missing AD configuration: {', '.join(config.get_missing_ad_vars())}")
    if not config.validate_graph_config():
        app.logger.warning(f"Missing Graph configuration: {', '.join(config.get_missing_graph_vars())}")

    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'

    print(f"Starting inactivity remediation Web UI on port {port}")
    print(f"Upload folder: {UPLOAD_FOLDER}")
    print(f"Download folder: {OUTPUT_FOLDER}")

    app.run(host='0.0.0.0', port=port, debug=debug)
