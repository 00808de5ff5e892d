"""
Product image uploads.

Every image is center-cropped to 4:3, scaled to 800x600 and re-encoded as a
progressive JPEG before it is stored. The storage backend is picked from
config, first match wins: UploadThing, then Cloudinary, then local disk.
"""
import base64
import hashlib
import io
import json
import logging
import os
import time

import requests
import shortuuid
from flask import current_app
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import ApiError

logger = logging.getLogger(__name__)

MAX_FILES = 5
MAX_FILE_SIZE = 10 * 1024 * 1024
TARGET_SIZE = (800, 600)
ASPECT_RATIO = 4 / 3
JPEG_QUALITY = 80
CLOUDINARY_FOLDER = 'raadarenda'
UPLOADTHING_API_URL = 'https://api.uploadthing.com/v6/uploadFiles'


def crop_to_aspect(image, ratio=ASPECT_RATIO):
    width, height = image.size
    if width / height > ratio:
        new_width = int(round(height * ratio))
        left = (width - new_width) // 2
        box = (left, 0, left + new_width, height)
    else:
        new_height = int(round(width / ratio))
        top = (height - new_height) // 2
        box = (0, top, width, top + new_height)
    return image.crop(box)


def process_image(data):
    """Return the JPEG bytes of the normalised 800x600 image."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError):
        raise ApiError(400, 'invalidFileType')

    image = ImageOps.exif_transpose(image)
    if image.mode != 'RGB':
        image = image.convert('RGB')

    image = crop_to_aspect(image).resize(TARGET_SIZE, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=JPEG_QUALITY, progressive=True, optimize=True)
    return buffer.getvalue()


def get_storage_backend(config=None):
    config = config or current_app.config
    if config.get('UPLOADTHING_TOKEN'):
        return 'uploadthing'
    if config.get('CLOUDINARY_CLOUD_NAME') and config.get('CLOUDINARY_API_KEY') and config.get('CLOUDINARY_API_SECRET'):
        return 'cloudinary'
    return 'local'


def _uploadthing_api_key(token):
    # Tokens are base64 JSON carrying the apiKey; plain secret keys are accepted as-is
    try:
        decoded = json.loads(base64.b64decode(token))
        return decoded.get('apiKey') or token
    except (ValueError, TypeError):
        return token


def upload_to_uploadthing(data, filename):
    api_key = _uploadthing_api_key(current_app.config['UPLOADTHING_TOKEN'])
    response = requests.post(
        UPLOADTHING_API_URL,
        headers={'X-Uploadthing-Api-Key': api_key},
        json={'files': [{'name': filename, 'size': len(data), 'type': 'image/jpeg'}],
              'acl': 'public-read', 'contentDisposition': 'inline'},
        timeout=30,
    )
    response.raise_for_status()
    presigned = response.json()['data'][0]

    upload = requests.post(
        presigned['url'],
        data=presigned.get('fields', {}),
        files={'file': (filename, data, 'image/jpeg')},
        timeout=60,
    )
    upload.raise_for_status()
    return presigned['fileUrl']


def upload_to_cloudinary(data, filename):
    config = current_app.config
    timestamp = int(time.time())
    to_sign = f'folder={CLOUDINARY_FOLDER}&timestamp={timestamp}{config["CLOUDINARY_API_SECRET"]}'
    response = requests.post(
        f'https://api.cloudinary.com/v1_1/{config["CLOUDINARY_CLOUD_NAME"]}/image/upload',
        data={
            'api_key': config['CLOUDINARY_API_KEY'],
            'timestamp': timestamp,
            'folder': CLOUDINARY_FOLDER,
            'signature': hashlib.sha1(to_sign.encode('utf-8')).hexdigest(),
        },
        files={'file': (filename, data, 'image/jpeg')},
        timeout=60,
    )
    response.raise_for_status()
    return response.json()['secure_url']


def save_to_local(data, filename):
    folder = os.path.abspath(current_app.config['UPLOAD_FOLDER'])
    os.makedirs(folder, exist_ok=True)
    with open(os.path.join(folder, filename), 'wb') as f:
        f.write(data)
    base_url = (current_app.config.get('PUBLIC_BASE_URL') or '').rstrip('/')
    return f'{base_url}/uploads/{filename}'


def store_image(file_storage):
    """Validate, normalise and store one uploaded image. Returns its public URL."""
    if not (file_storage.mimetype or '').startswith('image/'):
        raise ApiError(400, 'invalidFileType')

    data = file_storage.read()
    if len(data) > MAX_FILE_SIZE:
        raise ApiError(400, 'fileTooLarge')

    processed = process_image(data)
    filename = f'{shortuuid.uuid()}.jpg'
    backend = get_storage_backend()

    if backend == 'uploadthing':
        url = upload_to_uploadthing(processed, filename)
    elif backend == 'cloudinary':
        url = upload_to_cloudinary(processed, filename)
    else:
        url = save_to_local(processed, filename)

    logger.info(f"Stored image {filename} via {backend}")
    return url
