from flask import Blueprint, Flask, current_app, request, jsonify, send_file
from flask_cors import CORS
import pandas as pd
import csv
import io
import logging
import random

from .calculators import CALCULATORS, run_calculator
from .config import config
from .errors import TankNotFound, ValidationError
from .manager import BlendManager, BlendTab
from .models import Tank

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)

# CSV header -> tank field
CSV_COLUMNS = {
    'Tank Name': 'name',
    'Capacity': 'capacity',
    'Capacity Unit': 'capacity_unit',
    'Volume': 'volume',
    'Volume Unit': 'volume_unit',
    'Alcohol %': 'alcohol_percent',
    'Total Acidity (g/L)': 'total_acidity',
    'Volatile Acidity (g/L)': 'volatile_acidity',
    'pH': 'ph',
    'Residual Sugars (g/L)': 'residual_sugars',
    'Free SO2 (mg/L)': 'free_so2',
    'Total SO2 (mg/L)': 'total_so2',
    'Notes': 'notes',
}
REQUIRED_CSV_COLUMNS = {'Tank Name', 'Capacity', 'Volume', 'Alcohol %'}

# --- Helpers ---

def get_manager():
    return current_app.extensions['blend_manager']

def no_combinations_found():
    return jsonify({'message': 'No combinations found.'}), 404

@api.errorhandler(TankNotFound)
def handle_tank_not_found(error):
    logger.warning('Rejected request: %s', error.message)
    return jsonify(error.to_dict()), 404

@api.errorhandler(ValidationError)
def handle_validation_error(error):
    logger.warning('Rejected request: %s', error.message)
    return jsonify(error.to_dict()), 400

# --- Tank Management Endpoints ---

@api.route('/tanks', methods=['GET'])
def list_tanks():
    return jsonify([t.to_dict() for t in get_manager().list_tanks()])

@api.route('/tanks', methods=['POST'])
def add_tank():
    tank = get_manager().add_tank(request.get_json(silent=True) or {})
    return jsonify(tank.to_dict()), 201

@api.route('/tanks/<tank_id>', methods=['PUT'])
def edit_tank(tank_id):
    tank = get_manager().update_tank(tank_id, request.get_json(silent=True) or {})
    return jsonify(tank.to_dict())

@api.route('/tanks/<tank_id>', methods=['DELETE'])
def delete_tank(tank_id):
    tank = get_manager().delete_tank(tank_id)
    return jsonify({"message": f"Tank '{tank.name}' deleted."})

@api.route('/tanks/export', methods=['GET'])
def export_csv():
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=list(CSV_COLUMNS))
    writer.writeheader()
    for tank in get_manager().list_tanks():
        row = tank.to_dict()
        writer.writerow({header: row[name] for header, name in CSV_COLUMNS.items()})
    output.seek(0)
    return send_file(io.BytesIO(output.getvalue().encode()), mimetype='text/csv', as_attachment=True, download_name='tanks.csv')

@api.route('/upload', methods=['POST'])
def upload_csv():
    file = request.files.get('file')
    if not file:
        return jsonify({'error': 'No file provided'}), 400
    try:
        df = pd.read_csv(file)
    except Exception as e:
        return jsonify({'error': f"Could not read CSV: {e}"}), 400

    if not REQUIRED_CSV_COLUMNS.issubset(set(df.columns)):
        return jsonify({'error': f'CSV must have columns: {sorted(REQUIRED_CSV_COLUMNS)}'}), 400

    loaded = []
    for index, row in df.iterrows():
        data = {
            name: (None if pd.isna(row[header]) else row[header])
            for header, name in CSV_COLUMNS.items()
            if header in df.columns
        }
        try:
            loaded.append(Tank.from_payload(data))
        except ValidationError as e:
            # Header is line 1
            return jsonify({'error': f'Row {index + 2}: {e.message}', 'field': e.field}), 400

    get_manager().replace_tanks(loaded)
    return jsonify({'message': 'Upload successful!', 'tanks': [t.to_dict() for t in loaded]})

# --- Blend Endpoints ---

@api.route('/blend/calculate', methods=['POST'])
def calculate_blend():
    return jsonify(get_manager().run(BlendTab.FROM_TANKS, request.get_json(silent=True)))

@api.route('/blend/target', methods=['POST'])
def target_blend():
    found = get_manager().run(BlendTab.FROM_TARGET, request.get_json(silent=True))
    if not found['total_found']:
        return no_combinations_found()
    return jsonify(found)

@api.route('/blend/random', methods=['POST'])
def random_blend():
    return jsonify(get_manager().run(BlendTab.RANDOM, request.get_json(silent=True)))

# --- Calculators ---

@api.route('/calculators', methods=['GET'])
def list_calculators():
    return jsonify(sorted(CALCULATORS))

@api.route('/calculators/<name>', methods=['POST'])
def calculate(name):
    if name not in CALCULATORS:
        return jsonify({'error': 'Calculator not found.'}), 404
    return jsonify(run_calculator(name, request.get_json(silent=True) or {}))


def create_app(config_name='default', manager=None):
    settings = config[config_name]
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    app = Flask(__name__)
    app.config.from_object(settings)
    CORS(app)

    if manager is None:
        manager = BlendManager(
            rng=random.Random(settings.BLEND_RANDOM_SEED),
            top_k=settings.BLEND_TOP_K,
        )
    app.extensions['blend_manager'] = manager
    app.register_blueprint(api)
    return app


if __name__ == '__main__':
    app = create_app('development')
    app.run(host='0.0.0.0', port=app.config['PORT'])
