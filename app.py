from flask import Flask, request, jsonify
import os
import click
from extensions import db
from import_pipeline import ImportOptions, run_import
from persistence import SqlAlchemyGateway

app = Flask(__name__)
app.config['SECRET_KEY'] = 'dev-secret-key-change-in-production'

basedir = os.path.abspath(os.path.dirname(__file__))
instance_path = os.path.join(basedir, 'instance')
os.makedirs(instance_path, exist_ok=True)

# Configure upload settings
MAX_FILE_SIZE = 16 * 1024 * 1024  # 16MB max file size
app.config['MAX_CONTENT_LENGTH'] = MAX_FILE_SIZE

app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///' + os.path.join(basedir, 'instance', 'app.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

# Import settings (single user, no accounts)
app.config['IMPORT_USER_EMAIL'] = 'user@example.com'
app.config['IMPORT_MAX_DISPLAY_ERRORS'] = 20
app.config['IMPORT_PREVIEW_SIZE'] = 5

# FLASK_* environment variables override the defaults above,
# e.g. FLASK_SQLALCHEMY_DATABASE_URI
app.config.from_prefixed_env()

db.init_app(app)

from models import MoodEntry, User


# Accepted spellings of the import options (form fields, JSON from the old UI)
_OPTION_ALIASES = {
    'delimiter': 'delimiter',
    'skip_header': 'skip_header_line',
    'skip_header_line': 'skip_header_line',
    'skipHeader': 'skip_header_line',
    'repair_mode': 'repair_mode',
    'fix_mode': 'repair_mode',
    'fixMode': 'repair_mode',
    'preview_only': 'preview_only',
    'previewOnly': 'preview_only',
}


def _as_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _import_options(raw, preview=False):
    """Build ImportOptions from request values; raises ValueError on a bad delimiter."""
    kwargs = {}
    for key, value in raw.items():
        name = _OPTION_ALIASES.get(key)
        if name is None or value is None:
            continue
        kwargs[name] = value if name == 'delimiter' else _as_bool(value)
    if preview:
        kwargs['preview_only'] = True
    return ImportOptions(**kwargs)


def _read_import_request():
    """Return (document, raw options) from a JSON body or a multipart upload."""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        options = data.get('options')
        document = data.get('file')
        if isinstance(document, str):
            document = document.lstrip('\ufeff')
        return document, options if isinstance(options, dict) else {}

    document = None
    upload = request.files.get('file')
    if upload is not None and upload.filename != '':
        document = upload.read().decode('utf-8-sig')
    elif request.form.get('file'):
        document = request.form['file']
    return document, request.form.to_dict()


def _handle_import(preview=False):
    try:
        document, raw_options = _read_import_request()
        options = _import_options(raw_options, preview)
    except UnicodeDecodeError:
        return jsonify({'error': 'The uploaded file is not valid UTF-8 text'}), 400
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    if not isinstance(document, str) or not document:
        return jsonify({'error': 'No CSV content provided'}), 400

    try:
        if options.preview_only:
            preview_result = run_import(
                document, options, preview_size=app.config['IMPORT_PREVIEW_SIZE']
            )
            return jsonify({'success': True, 'preview': preview_result.to_dict()})

        result = run_import(
            document,
            options,
            gateway=SqlAlchemyGateway(),
            user_email=app.config['IMPORT_USER_EMAIL'],
        )
    except Exception as e:
        db.session.rollback()
        app.logger.exception('CSV import failed')
        return jsonify({'error': 'CSV import failed', 'details': str(e)}), 500

    return jsonify({
        'success': True,
        'results': result.to_dict(max_errors=app.config['IMPORT_MAX_DISPLAY_ERRORS']),
        'message': (
            f'Import finished: {result.imported_count} entries imported, '
            f'{result.failed_count} failed, out of {result.total_records}.'
        ),
    })


@app.route('/api/import/csv', methods=['POST'])
def import_csv():
    return _handle_import()


@app.route('/api/import/preview', methods=['POST'])
def import_preview():
    """Show what an import would produce without storing anything."""
    return _handle_import(preview=True)


@app.route('/api/moods')
def list_moods():
    user = User.query.filter_by(email=app.config['IMPORT_USER_EMAIL']).first()
    if user is None:
        return jsonify([])

    entries = MoodEntry.query.filter_by(user_id=user.id).order_by(MoodEntry.timestamp.desc()).all()
    return jsonify([e.to_dict() for e in entries])


@app.errorhandler(413)
def file_too_large(e):
    return jsonify({'error': 'File too large (16MB max)'}), 413


@app.cli.command('import-csv')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--delimiter', default=',', show_default=True,
              help='Field separator: one character, or "tab".')
@click.option('--no-header-skip', is_flag=True, help='Treat the first line as data.')
@click.option('--no-repair', is_flag=True, help='Reject malformed lines instead of scanning them.')
@click.option('--preview', is_flag=True, help='Parse only, store nothing.')
def import_csv_command(path, delimiter, no_header_skip, no_repair, preview):
    """Import a mood-log CSV export into the database."""
    try:
        options = ImportOptions(
            delimiter=delimiter,
            skip_header_line=not no_header_skip,
            repair_mode=not no_repair,
            preview_only=preview,
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--delimiter')

    with open(path, encoding='utf-8-sig') as f:
        document = f.read()

    if preview:
        result = run_import(document, options, preview_size=app.config['IMPORT_PREVIEW_SIZE'])
        click.echo(f'{result.found_records} records found in {result.total_lines} lines')
        for record in result.records:
            click.echo(
                f'  line {record.line_number}: {record.parsed_date or record.date} '
                f'score={record.score} {record.comment}'
            )
    else:
        db.create_all()
        result = run_import(
            document,
            options,
            gateway=SqlAlchemyGateway(),
            user_email=app.config['IMPORT_USER_EMAIL'],
        )
        click.echo(
            f'{result.imported_count} imported, {result.failed_count} failed, '
            f'{result.total_records} records'
        )

    for diagnostic in result.diagnostics:
        click.echo(str(diagnostic), err=True)


def init_db():
    with app.app_context():
        db.create_all()
        SqlAlchemyGateway().ensure_user(app.config['IMPORT_USER_EMAIL'])


if __name__ == '__main__':
    init_db()
    app.run(debug=True)
