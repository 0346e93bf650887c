"""
Web API for ListingAI - JSON endpoints behind the product listing form.
Each request drives a fresh feature controller sharing the app's context.
"""

import asyncio
import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from listingai.config import ModelChoice
from listingai.controllers import (
    DescriptionController,
    EditMode,
    GenerationController,
    ImageEditController,
    ImageGenerationController,
    ImageToTextController,
)
from listingai.core import ListingApp
from listingai.errors import ErrorKind, GenerationError, MissingInput

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.MISSING_INPUT: 400,
    ErrorKind.INVALID_CREDENTIAL: 401,
    ErrorKind.SAFETY_BLOCKED: 422,
    ErrorKind.HTTP_FAILURE: 502,
    ErrorKind.PARSE_FAILURE: 502,
    ErrorKind.TRANSPORT_FAILURE: 504,
}


def error_response(error: GenerationError, **extra):
    return jsonify({
        'success': False,
        'error': error.message,
        'error_kind': error.kind.value,
        'offer_credential_update': error.suggests_credential_update,
        **extra,
    }), ERROR_STATUS.get(error.kind, 500)


def result_response(controller: GenerationController, result, **extra):
    if result is None:
        return jsonify({
            'success': False,
            'error': 'A request is already in progress'
        }), 409
    if not result.success:
        # A placeholder is returned for display but the request still failed.
        return error_response(
            controller.error,
            placeholder=result.placeholder,
            image_data=result.data_url(),
        )
    return jsonify({
        'success': True,
        'text': result.text,
        'image_data': result.data_url(),
        'placeholder': result.placeholder,
        'error': result.error,
        **extra,
    })


def text_field(data: dict, name: str, default: Optional[str] = '') -> Optional[str]:
    value = data.get(name)
    if value is None:
        return default
    if not isinstance(value, str):
        raise MissingInput(name, f"'{name}' must be a string.")
    return value


def int_field(data: dict, name: str, default: int) -> int:
    value = data.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise MissingInput(name, f"'{name}' must be an integer.")
    try:
        return int(value)
    except ValueError:
        raise MissingInput(name, f"'{name}' must be an integer.")


def bool_field(data: dict, name: str, default: bool) -> bool:
    value = data.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise MissingInput(name, f"'{name}' must be true or false.")
    return value


def create_app(listing: Optional[ListingApp] = None) -> Flask:
    listing = listing or ListingApp()
    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes
    app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024  # 16MB max upload
    app.config['LISTING_APP'] = listing

    def body() -> dict:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    @app.errorhandler(GenerationError)
    def generation_error(error):
        return error_response(error)

    @app.route('/api/models')
    def get_models():
        """List configured model profiles"""
        models = [
            {
                'feature': choice.value,
                'model': profile.model,
                'supports_image_output': profile.supports_image_output,
            }
            for choice, profile in listing.config.models.items()
        ]
        return jsonify({'success': True, 'models': models})

    @app.route('/api/credential', methods=['GET'])
    def get_credential():
        return jsonify({'success': True, 'exists': listing.store.exists()})

    @app.route('/api/credential', methods=['POST'])
    def save_credential():
        data = body()
        asyncio.run(listing.update_credential(
            text_field(data, 'credential'), verify=bool_field(data, 'verify', True)
        ))
        return jsonify({'success': True, 'exists': True})

    @app.route('/api/credential', methods=['DELETE'])
    def delete_credential():
        listing.clear_credential()
        return jsonify({'success': True, 'exists': False})

    @app.route('/api/describe', methods=['POST'])
    def describe():
        """Generate a product description from free text"""
        data = body()
        controller = DescriptionController(listing.context, listing.bus)
        result = asyncio.run(controller.generate(
            text_field(data, 'prompt'),
            product_name=text_field(data, 'product_name'),
            tone=text_field(data, 'tone', None),
        ))
        return result_response(controller, result)

    @app.route('/api/generate-image', methods=['POST'])
    def generate_image():
        """Generate one or more product images from a description"""
        data = body()
        controller = ImageGenerationController(listing.context, listing.bus)
        result = asyncio.run(controller.generate(
            text_field(data, 'prompt'),
            style=text_field(data, 'style', 'product-photography'),
            background=text_field(data, 'background', 'white'),
            aspect_ratio=text_field(data, 'aspect_ratio', '1:1'),
            detail_level=text_field(data, 'detail_level', 'high'),
            preset=text_field(data, 'preset', None),
            allow_placeholder=bool_field(data, 'allow_placeholder', False),
            number_of_images=int_field(data, 'number_of_images', 1),
        ))
        images = [
            {'text': r.text, 'image_data': r.data_url()} for r in controller.results
        ]
        return result_response(controller, result, images=images)

    @app.route('/api/describe-image', methods=['POST'])
    def describe_image():
        """Generate a product description from an uploaded image"""
        data = body()
        try:
            model = ModelChoice(text_field(data, 'model', ModelChoice.VISION.value))
        except ValueError:
            return jsonify({'success': False, 'error': f"Unknown model '{data.get('model')}'"}), 400
        controller = ImageToTextController(listing.context, listing.bus, follow_selection=False)
        result = asyncio.run(controller.generate(
            product_name=text_field(data, 'product_name'),
            tone=text_field(data, 'tone', None),
            max_length=int_field(data, 'max_length', 200),
            include_features=bool_field(data, 'include_features', True),
            include_materials=bool_field(data, 'include_materials', True),
            include_use_cases=bool_field(data, 'include_use_cases', True),
            model=model,
            image=text_field(data, 'image', None),
        ))
        return result_response(controller, result)

    @app.route('/api/attributes', methods=['POST'])
    def extract_attributes():
        """Extract structured product attributes from an image"""
        image = text_field(body(), 'image', None)
        controller = ImageToTextController(listing.context, listing.bus, follow_selection=False)
        attributes = asyncio.run(controller.extract_attributes(image))
        if attributes is None:
            return error_response(controller.error)
        return jsonify({'success': True, 'attributes': attributes.model_dump()})

    @app.route('/api/edit-image', methods=['POST'])
    def edit_image():
        """Edit or regenerate a product image from an instruction"""
        data = body()
        try:
            mode = EditMode(text_field(data, 'mode', EditMode.EDIT.value))
        except ValueError:
            return jsonify({'success': False, 'error': f"Unknown mode '{data.get('mode')}'"}), 400
        controller = ImageEditController(listing.context, listing.bus, follow_selection=False)
        result = asyncio.run(controller.generate(
            text_field(data, 'instruction'), mode=mode, image=text_field(data, 'image', None)
        ))
        return result_response(controller, result)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500

    return app


if __name__ == '__main__':
    listing = ListingApp()
    print("🛍️ Starting ListingAI Web Server...")
    print(f"🔑 API key stored: {listing.store.exists()}")
    print("🌐 API available at: http://localhost:5000/api")
    create_app(listing).run(host='0.0.0.0', port=5000, debug=True, threaded=True)
