# Flask web application for Photo Mapper

import os
import uuid
import logging
from io import BytesIO

from dotenv import load_dotenv
from flask import (Flask, Blueprint, current_app, flash, jsonify, redirect, render_template, request,
                   send_from_directory, url_for)
from PIL import Image, ImageOps, UnidentifiedImageError
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

from exif_gps import extract_gps_coordinate, get_orientation
from geocoder import geocode
from geolocation_engine import analyze_photo
from photo_registry import PhotoRegistry, render_map

logger = logging.getLogger(__name__)

# --- Application Configuration ---
UPLOAD_FOLDER = 'uploads'
ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'heic', 'heif', 'avif', 'webp', 'tiff', 'bmp'}
MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB upload limit
LOG_FORMAT = '%(asctime)s - PHOTO_MAPPER - %(levelname)s - %(message)s'

main = Blueprint('main', __name__)


def is_allowed_file(filename):
    """Checks if the uploaded file has an allowed image extension."""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def parse_flag(value):
    """Form booleans arrive as strings; only 'true' counts."""
    return value == 'true'


def get_registry():
    return current_app.extensions['photo_registry']


def run_analysis(image_bytes, has_gps_data, user_context):
    """Runs the analysis pipeline with the collaborators configured on the app."""
    return analyze_photo(
        image_bytes,
        has_gps_data,
        user_context=user_context,
        vision_client=current_app.config.get('VISION_CLIENT'),
        geocode_fn=current_app.config.get('GEOCODE_FN') or geocode,
    )


def save_gallery_copy(image_bytes, original_extension):
    """Stores an upright copy of the upload for the gallery and returns its filename."""
    unique_filename = secure_filename(f"{uuid.uuid4()}{original_extension}")
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], unique_filename)
    os.makedirs(current_app.config['UPLOAD_FOLDER'], exist_ok=True)

    try:
        with Image.open(BytesIO(image_bytes)) as image:
            image_format = image.format
            upright = image
            if get_orientation(image_bytes) not in (None, 1):
                upright = ImageOps.exif_transpose(image)
            upright.save(filepath, format=image_format)
    except (UnidentifiedImageError, OSError, ValueError, KeyError) as e:
        # Formats Pillow cannot re-encode are stored as uploaded
        logger.warning(f"Could not re-encode upload ({e}); storing original bytes.")
        with open(filepath, 'wb') as f:
            f.write(image_bytes)
    logger.info(f"Image saved for gallery: {filepath}")
    return unique_filename


# --- Routes ---
@main.route('/')
def index():
    """Serves the upload form, the gallery and the photo map."""
    photos = get_registry().all()
    selected = get_registry().get(request.args.get('selected')) if request.args.get('selected') else None
    return render_template('index.html', photos=photos, selected=selected or (photos[-1] if photos else None))


@main.route('/upload', methods=['POST'])
def handle_image_upload():
    """
    Browser flow: reads GPS from EXIF, analyzes the photo, registers it
    and redirects back to the gallery with the new photo selected.
    """
    if 'image' not in request.files:
        flash('No image file selected.')
        return redirect(url_for('main.index'))

    uploaded_file = request.files['image']
    user_context = request.form.get('userContext')

    if uploaded_file.filename == '':
        flash('No image file selected.')
        return redirect(url_for('main.index'))

    if not is_allowed_file(uploaded_file.filename):
        allowed_types_str = ', '.join(sorted(ALLOWED_EXTENSIONS))
        flash(f'Invalid file type. Allowed types: {allowed_types_str}')
        return redirect(url_for('main.index'))

    try:
        image_bytes = uploaded_file.read()
        gps_coordinate = extract_gps_coordinate(image_bytes)
        has_gps_data = gps_coordinate is not None

        results_data = run_analysis(image_bytes, has_gps_data, user_context)

        original_extension = os.path.splitext(uploaded_file.filename)[1].lower()
        stored_name = save_gallery_copy(image_bytes, original_extension)
        photo = get_registry().add_from_analysis(
            url_for('main.uploaded_image', filename=stored_name),
            gps_coordinate,
            has_gps_data,
            results_data,
        )
        return redirect(url_for('main.index', selected=photo.id))
    except Exception as e:
        logger.error(f"Processing upload '{uploaded_file.filename}' failed: {e}", exc_info=True)
        flash(f'An error occurred while processing your image: {str(e)[:100]}')
        return redirect(url_for('main.index'))


@main.route('/uploads/<path:filename>')
def uploaded_image(filename):
    return send_from_directory(os.path.abspath(current_app.config['UPLOAD_FOLDER']), filename)


@main.route('/api/analyze-image', methods=['POST'])
def analyze_image_endpoint():
    """JSON upload endpoint: multipart 'image', 'hasGpsData' and optional 'userContext'."""
    try:
        uploaded_file = request.files.get('image')
        if uploaded_file is None or uploaded_file.filename == '':
            return jsonify({'message': 'No image file provided'}), 400

        has_gps_data = parse_flag(request.form.get('hasGpsData'))
        user_context = request.form.get('userContext')
        results_data = run_analysis(uploaded_file.read(), has_gps_data, user_context)
        return jsonify(results_data)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Vision API error: {e}", exc_info=True)
        return jsonify({'message': 'Analysis failed', 'error': str(e)}), 500


@main.route('/api/photos')
def list_photos():
    return jsonify([photo.to_dict() for photo in get_registry().all()])


@main.route('/map')
def photo_map():
    """Standalone folium map of every registered photo."""
    return render_map(get_registry().all(), selected_id=request.args.get('selected'))


def create_app(config=None):
    """Application factory; config overrides the environment-derived defaults."""
    load_dotenv()
    app = Flask(__name__)
    app.config['UPLOAD_FOLDER'] = os.getenv('PHOTO_MAPPER_UPLOAD_FOLDER', UPLOAD_FOLDER)
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    # IMPORTANT: Set PHOTO_MAPPER_SECRET_KEY to a strong, random value for any real deployment!
    app.secret_key = os.getenv('PHOTO_MAPPER_SECRET_KEY', 'dev-secret-key-change-me')
    app.config['VISION_CLIENT'] = None
    app.config['GEOCODE_FN'] = None
    if config:
        app.config.update(config)

    app.extensions['photo_registry'] = PhotoRegistry()
    app.register_blueprint(main)
    return app


app = create_app()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    # Create the uploads directory if it doesn't exist when the app starts
    if not os.path.exists(app.config['UPLOAD_FOLDER']):
        try:
            os.makedirs(app.config['UPLOAD_FOLDER'])
            logger.info(f"Created uploads directory: {app.config['UPLOAD_FOLDER']}")
        except OSError as e_mkdir:
            logger.critical(f"Could not create uploads directory '{app.config['UPLOAD_FOLDER']}': {e_mkdir}")
            raise

    # debug=True is for development only (enables debugger and auto-reloader)
    app.run(debug=True)
