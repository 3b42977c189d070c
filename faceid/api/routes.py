"""
API routes/handlers
"""
import base64
import logging
from flask import Blueprint, request, jsonify

from faceid.application.identity_service import IdentityService

logger = logging.getLogger(__name__)

# Create blueprint
api = Blueprint('api', __name__)

# Service instance (injected)
identity_service: IdentityService = None


def init_routes(service: IdentityService):
    """Initialize routes with service dependency"""
    global identity_service
    identity_service = service


def _flag(name: str, default: bool = True) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes')


def _not_ready():
    return jsonify({
        "success": False,
        "error": "Service not ready",
    }), 503


@api.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    status = identity_service.face_service.get_health()
    return jsonify(status.to_dict())


@api.route('/ready', methods=['GET'])
def ready():
    """Readiness check endpoint"""
    if identity_service.face_service.is_ready():
        return jsonify({"ready": True})
    return jsonify({"ready": False}), 503


@api.route('/self-test', methods=['GET'])
def self_test():
    return jsonify({"version": identity_service.self_test()})


@api.route('/identify', methods=['POST'])
def identify():
    """Identify the face in the request image against registered templates"""
    if not identity_service.face_service.is_ready():
        return _not_ready()

    work_id = request.args.get('workid')
    data = request.get_json(silent=True)
    if data and 'image_url' in data:
        result = identity_service.identify_url(data['image_url'], data.get('workid') or work_id)
    else:
        image_data = request.get_data()
        if not image_data:
            return jsonify({
                "success": False,
                "error": "No image data in request body",
            }), 400
        result = identity_service.identify(image_data, work_id)

    return jsonify({"success": True, "matched": result})


@api.route('/detect', methods=['POST'])
def detect():
    """Detect faces, returning cropped faces and/or features"""
    if not identity_service.face_service.is_ready():
        return _not_ready()

    image_data = request.get_data()
    if not image_data:
        return jsonify({
            "success": False,
            "error": "No image data in request body",
        }), 400

    faces = identity_service.detect(image_data, face=_flag('face'), feature=_flag('feature'))
    results = []
    for face in faces:
        item = {}
        if 'face' in face:
            item['face'] = base64.b64encode(face['face']).decode('ascii')
        if 'features' in face:
            item['features'] = face['features'].to_dict()
        results.append(item)

    return jsonify({"success": True, "faces": results})


@api.route('/templates/count', methods=['GET'])
def count_templates():
    return jsonify({"count": identity_service.count()})


@api.route('/templates/<template_id>', methods=['PUT'])
def register_template(template_id: str):
    """Register template image bytes under template_id"""
    image_data = request.get_data()
    if not image_data:
        return jsonify({
            "success": False,
            "error": "No template data in request body",
        }), 400

    if not identity_service.register(template_id, image_data, force=_flag('force', False)):
        return jsonify({"success": False, "error": "Template already exists"}), 409
    return jsonify({"success": True, "id": template_id})


@api.route('/templates/<template_id>', methods=['DELETE'])
def unregister_template(template_id: str):
    if not identity_service.unregister(template_id):
        return jsonify({"success": False, "error": "Template not found"}), 404
    return jsonify({"success": True, "id": template_id})


@api.route('/templates/<template_id>', methods=['GET'])
def has_template(template_id: str):
    if not identity_service.has(template_id):
        return jsonify({"success": False, "error": "Template not found"}), 404
    return jsonify({"success": True, "id": template_id})


@api.route('/templates', methods=['DELETE'])
def clear_templates():
    identity_service.clear()
    return jsonify({"success": True})
