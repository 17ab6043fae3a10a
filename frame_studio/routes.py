"""
Flask routes for Frame Studio
JSON API for the customization editor, saved customizations and previews
"""

import io
from dataclasses import asdict
from pathlib import Path
from flask import Blueprint, current_app, jsonify, request, send_file
from loguru import logger

from .errors import (
    FrameStudioError, ValidationError, ImageLoadError, UploadError,
    PersistenceError, SessionNotFoundError, InvalidImageFormatError, FileTooLargeError
)
from .images import encode_png
from .orders import (
    collect_product_image_info, create_image_summary,
    format_image_info_for_order_notes, release_customizations
)


bp = Blueprint('frame_studio', __name__)


def services():
    return current_app.extensions['frame_studio']


def status_for(error: Exception) -> int:
    """HTTP status for an error raised or reported by the pipeline"""
    if isinstance(error, SessionNotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, ImageLoadError):
        return 422
    if isinstance(error, UploadError):
        return 502
    if isinstance(error, PersistenceError):
        return 507
    return 500


@bp.errorhandler(FrameStudioError)
def handle_frame_studio_error(error):
    status = status_for(error)
    if status >= 500:
        logger.error(f"{request.method} {request.path} failed: {error}")
    else:
        logger.warning(f"{request.method} {request.path} rejected: {error}")
    return jsonify(error.to_dict()), status


def json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def require(body: dict, key: str):
    if key not in body or body[key] is None:
        raise ValidationError(f"Missing required field: {key}", details={'field': key})
    return body[key]


# Editor sessions

@bp.route('/sessions', methods=['POST'])
def open_session():
    """Open an editor for a product and its frame overlay"""
    body = json_body()
    product_id = str(require(body, 'productId')).strip()
    if not product_id:
        raise ValidationError("productId must not be empty")
    product_handle = str(body.get('productHandle') or product_id)

    svc = services()
    session = svc.sessions.add(
        svc.controller.open_session(product_id, product_handle, body.get('frameImageUrl'))
    )
    return jsonify(session.summary()), 201


@bp.route('/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    return jsonify(services().sessions.get(session_id).summary())


@bp.route('/sessions/<session_id>', methods=['DELETE'])
def close_session(session_id):
    closed = services().sessions.close(session_id)
    if not closed:
        raise SessionNotFoundError(session_id)
    return jsonify({'closed': True})


@bp.route('/sessions/<session_id>/image', methods=['POST'])
def upload_image(session_id):
    """Load the customer's photo into the editor"""
    svc = services()
    session = svc.sessions.get(session_id)

    if 'image' not in request.files:
        raise ValidationError("No image file uploaded")
    image_file = request.files['image']
    if image_file.filename == '':
        raise ValidationError("No image file selected")

    validate_upload(image_file)

    loaded = svc.controller.load_user_image(session, image_file)
    payload = session.summary()
    payload['loaded'] = loaded
    return jsonify(payload), 200 if loaded else 422


def validate_upload(file):
    """Validate size and extension of an uploaded photo"""
    file.seek(0, 2)  # Seek to end
    size = file.tell()
    file.seek(0)  # Reset to beginning

    max_size = current_app.config.get('MAX_UPLOAD_SIZE', 20 * 1024 * 1024)
    if size > max_size:
        raise FileTooLargeError(
            filename=file.filename,
            size_mb=size / (1024 * 1024),
            limit_mb=max_size / (1024 * 1024)
        )

    allowed_extensions = current_app.config.get('ALLOWED_EXTENSIONS', ['.jpg', '.jpeg', '.png'])
    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in allowed_extensions:
        raise InvalidImageFormatError(file.filename, f"Extension: {file_ext}")


@bp.route('/sessions/<session_id>/drag', methods=['POST'])
def drag(session_id):
    """Pointer input: phase is start, move or end"""
    svc = services()
    session = svc.sessions.get(session_id)
    body = json_body()
    phase = body.get('phase')

    if phase == 'start':
        applied = svc.controller.start_drag(session, require(body, 'x'), require(body, 'y'))
    elif phase == 'move':
        applied = svc.controller.drag_to(session, require(body, 'x'), require(body, 'y'))
    elif phase == 'end':
        svc.controller.end_drag(session)
        applied = True
    else:
        raise ValidationError(f"Unknown drag phase: {phase}", details={'phase': phase})

    payload = session.summary()
    payload['applied'] = applied
    return jsonify(payload)


@bp.route('/sessions/<session_id>/scale', methods=['POST'])
def set_scale(session_id):
    svc = services()
    session = svc.sessions.get(session_id)
    svc.controller.set_scale(session, require(json_body(), 'value'))
    return jsonify(session.summary())


@bp.route('/sessions/<session_id>/rotation', methods=['POST'])
def set_rotation(session_id):
    svc = services()
    session = svc.sessions.get(session_id)
    svc.controller.set_rotation(session, require(json_body(), 'value'))
    return jsonify(session.summary())


@bp.route('/sessions/<session_id>/reset', methods=['POST'])
def reset(session_id):
    svc = services()
    session = svc.sessions.get(session_id)
    svc.controller.reset(session)
    return jsonify(session.summary())


@bp.route('/sessions/<session_id>/composite.png', methods=['GET'])
def composite_image(session_id):
    session = services().sessions.get(session_id)
    with session.lock:
        return png_response(session.composite_surface)


@bp.route('/sessions/<session_id>/crop.png', methods=['GET'])
def crop_image(session_id):
    session = services().sessions.get(session_id)
    with session.lock:
        return png_response(session.crop_surface)


@bp.route('/sessions/<session_id>/save', methods=['POST'])
def save(session_id):
    """Export, upload and persist the customization"""
    svc = services()
    session = svc.sessions.get(session_id)
    result = svc.exporter.save(session)
    status = 200 if result.success else status_for(result.exception)
    return jsonify(result.to_dict()), status


def png_response(image):
    return send_file(io.BytesIO(encode_png(image)), mimetype='image/png')


# Saved customizations

@bp.route('/customizations/<product_id>', methods=['GET'])
def get_customization(product_id):
    record = services().store.get(product_id)
    if record is None:
        return jsonify({'error': 'not_found', 'productId': product_id}), 404
    return jsonify(record.to_json_dict())


@bp.route('/customizations/<product_id>', methods=['DELETE'])
def remove_customization(product_id):
    store = services().store
    existed = product_id in store
    store.remove(product_id)
    return jsonify({'removed': existed})


@bp.route('/customizations', methods=['DELETE'])
def clear_customizations():
    services().store.clear()
    return jsonify({'cleared': True})


@bp.route('/preview/<product_id>', methods=['GET'])
def preview(product_id):
    """Render a saved customization at the requested size"""
    svc = services()
    width = request.args.get('width', svc.config.PREVIEW_DEFAULT_WIDTH)
    height = request.args.get('height', svc.config.PREVIEW_DEFAULT_HEIGHT)
    surface = svc.preview.render(width, height, svc.store.get(product_id),
                                 fallback_image_url=request.args.get('fallback'))
    return png_response(surface)


# Order hand-off

@bp.route('/orders/image-info', methods=['POST'])
def order_image_info():
    """Customization image URLs and order notes for a cart"""
    items = require(json_body(), 'items')
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    try:
        infos = collect_product_image_info(items, services().store)
    except ValueError as e:
        raise ValidationError(f"Invalid cart item: {e}")

    return jsonify({
        'items': [asdict(info) for info in infos],
        'notes': format_image_info_for_order_notes(infos),
        'summary': create_image_summary(infos),
    })


@bp.route('/orders/release', methods=['POST'])
def release_order_customizations():
    """Drop customizations consumed by a placed order"""
    product_ids = require(json_body(), 'productIds')
    if not isinstance(product_ids, list):
        raise ValidationError("productIds must be a list")
    removed = release_customizations(services().store, [str(pid) for pid in product_ids])
    return jsonify({'removed': removed})
