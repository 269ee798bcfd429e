from flask import Flask, jsonify
from dotenv import load_dotenv
load_dotenv()
from config import config
import os
import logging
from functools import partial

from pollution_ml.model_inference import PollutionPredictor
from river_ai.api_routes import river_api
from river_ai.flow_backend import FlowBackend
from river_ai.pipeline import RiverVideoAnalyzer
from river_services.trash_detection import TrashDetector
from river_services.weather import fetch_weather_data

logger = logging.getLogger(__name__)


def build_predictor(app_config):
    """Create the pollution predictor and bring it to the ready state"""
    predictor = PollutionPredictor(
        n_trees=app_config['POLLUTION_MODEL_TREES'],
        max_depth=app_config['POLLUTION_MODEL_MAX_DEPTH'],
        min_samples_split=app_config['POLLUTION_MODEL_MIN_SAMPLES_SPLIT'],
        n_samples=app_config['POLLUTION_TRAINING_SAMPLES'],
        n_jobs=app_config['POLLUTION_MODEL_N_JOBS'],
        random_state=app_config['POLLUTION_MODEL_SEED']
    )

    model_path = app_config.get('POLLUTION_MODEL_PATH')
    if not (model_path and predictor.load_model(model_path)):
        predictor.initialize()
    return predictor


def build_analyzer(app_config, predictor):
    """Wire the video analysis pipeline from configuration"""
    return RiverVideoAnalyzer(
        predictor=predictor,
        trash_detector=TrashDetector(
            api_key=app_config.get('GOOGLE_API_KEY'),
            model_name=app_config['GEMINI_MODEL']
        ),
        weather_fetcher=partial(
            fetch_weather_data,
            url=app_config['WEATHER_API_URL'],
            timeout=app_config['WEATHER_TIMEOUT_SECONDS']
        ),
        backend=FlowBackend(timeout=app_config['FLOW_BACKEND_TIMEOUT_SECONDS']),
        max_frames=app_config['ANALYSIS_MAX_FRAMES'],
        flow_method=app_config['FLOW_METHOD']
    )


def create_app(config_name='default'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Create upload directory
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Initialize services
    predictor = build_predictor(app.config)
    app.extensions['pollution_predictor'] = predictor
    app.extensions['river_analyzer'] = build_analyzer(app.config, predictor)

    # Register blueprints
    app.register_blueprint(river_api)

    @app.errorhandler(413)
    def upload_too_large(error):
        return jsonify({'success': False, 'error': 'Uploaded video is too large'}), 413

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok', 'model_ready': predictor.is_ready})

    logger.info(f"River analysis app created with '{config_name}' configuration")
    return app


if __name__ == '__main__':
    app = create_app(os.environ.get('FLASK_CONFIG', 'default'))
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
