"""
River Flow AI - API Routes
REST API endpoints for video analysis, water quality and pollution forecasts
"""

from flask import Blueprint, request, jsonify, current_app
from datetime import datetime
import os
import logging
import uuid
from werkzeug.utils import secure_filename

from pollution_ml.schemas import PredictionModelInput, WaterChemistry
from pollution_ml.water_quality import calculate_water_quality_index, generate_state_water_quality
from .pipeline import AnalysisError

logger = logging.getLogger(__name__)

# Create Blueprint
river_api = Blueprint('river_api', __name__, url_prefix='/api/v1')

DEFAULT_VIDEO_EXTENSIONS = {'mp4', 'mov', 'avi', 'webm', 'mkv'}


def _analyzer():
    return current_app.extensions['river_analyzer']


def _predictor():
    return current_app.extensions['pollution_predictor']


def _optional_float(source, key):
    """Parse an optional numeric field; missing or blank means None"""
    value = source.get(key)
    if value is None or value == '':
        return None
    return float(value)


def _allowed_video(filename):
    allowed = current_app.config.get('ALLOWED_VIDEO_EXTENSIONS', DEFAULT_VIDEO_EXTENSIONS)
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed


@river_api.route('/analyze-video', methods=['POST'])
def analyze_video():
    """
    Run the full analysis over an uploaded river clip.

    Input (multipart form):
        - video: River video file (required)
        - latitude / longitude: GPS position for weather (optional)
        - ph_value, bod_level, ammoniacal_nitrogen, suspended_solids:
          Water chemistry readings (optional, defaults applied)

    Returns:
        AnalysisResult as JSON
    """
    if 'video' not in request.files:
        return jsonify({'success': False, 'error': 'No video provided'}), 400

    video_file = request.files['video']
    upload_name = secure_filename(video_file.filename or '')
    if not upload_name or not _allowed_video(upload_name):
        return jsonify({'success': False, 'error': 'Unsupported video file'}), 400

    try:
        latitude = _optional_float(request.form, 'latitude')
        longitude = _optional_float(request.form, 'longitude')
        chemistry = WaterChemistry.from_mapping(request.form)
    except (TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': f'Invalid parameter: {e}'}), 400

    upload_folder = current_app.config.get('UPLOAD_FOLDER', 'uploads')
    os.makedirs(upload_folder, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}_{upload_name}"
    video_path = os.path.join(upload_folder, stored_name)
    video_file.save(video_path)

    try:
        result = _analyzer().analyze_video(
            video_path,
            latitude=latitude,
            longitude=longitude,
            chemistry=chemistry,
            filename=upload_name
        )
    except AnalysisError as e:
        logger.error(f"Video analysis error: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
    except Exception as e:
        logger.exception(f"Unexpected error analyzing {upload_name}: {e}")
        return jsonify({'success': False, 'error': 'Video analysis failed'}), 500
    finally:
        try:
            os.remove(video_path)
        except OSError as e:
            logger.warning(f"Could not remove upload {video_path}: {e}")

    return jsonify({'success': True, **result.to_dict()})


@river_api.route('/water-quality-index', methods=['POST'])
def water_quality_index():
    """
    Compute the WQI from chemistry readings.

    Input (JSON): ph_value, bod_level, ammoniacal_nitrogen, suspended_solids
    """
    data = request.get_json(silent=True) or {}
    try:
        chemistry = WaterChemistry.from_mapping(data)
    except (AttributeError, TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': f'Invalid parameter: {e}'}), 400

    wqi = calculate_water_quality_index(
        chemistry.ph_value,
        chemistry.bod_level,
        chemistry.ammoniacal_nitrogen,
        chemistry.suspended_solids
    )
    return jsonify({'success': True, 'chemistry': chemistry.to_dict(), **wqi.to_dict()})


@river_api.route('/pollution-prediction', methods=['POST'])
def pollution_prediction():
    """
    Forecast pollution spread for explicit model inputs.

    Input (JSON): all nine model features
    """
    data = request.get_json(silent=True) or {}
    try:
        model_input = PredictionModelInput.from_mapping(data)
    except (TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    predictor = _predictor()
    if not predictor.is_ready:
        return jsonify({'success': False, 'error': 'Pollution model not ready'}), 503

    prediction = predictor.predict_pollution_spread(model_input)
    return jsonify({'success': True, **prediction.to_dict()})


@river_api.route('/regional-water-quality')
def regional_water_quality():
    """Per-state water chemistry snapshot with WQI (mock monitoring data)"""
    states = generate_state_water_quality()
    return jsonify({
        'success': True,
        'generated_at': datetime.utcnow().isoformat(),
        'count': len(states),
        'states': states
    })


@river_api.route('/model-status')
def model_status():
    """Readiness of the pollution model and the dense flow backend"""
    predictor = _predictor()
    analyzer = _analyzer()

    status = {
        'success': True,
        'pollution_model': {
            'ready': predictor.is_ready,
            'version': predictor.model_version,
        },
        'flow_backend_ready': analyzer.backend.is_ready,
        'flow_method': analyzer.flow_method.value,
        'trash_detection_configured': analyzer.trash_detector.is_configured
    }
    if predictor.is_ready:
        status['pollution_model']['trees'] = len(predictor.forest.trees)
        status['pollution_model']['feature_importance'] = predictor.forest.feature_importance()

    return jsonify(status)
