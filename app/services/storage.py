import mimetypes
import os

from werkzeug.utils import secure_filename
from flask import current_app
import boto3
from botocore.client import Config

from ..utils.errors import ServiceError

AVATAR_TYPES = ('image/png', 'image/jpeg', 'image/jpg', 'image/webp')
LOGO_TYPES = AVATAR_TYPES + ('image/svg+xml',)


def _ensure_local_dir():
    d = current_app.config['LOCAL_STORAGE_DIR']
    os.makedirs(d, exist_ok=True)
    return d


def _s3_client():
    s3_kwargs = {}
    endpoint = current_app.config.get('S3_ENDPOINT')
    if endpoint:
        s3_kwargs['endpoint_url'] = endpoint
    region = current_app.config.get('S3_REGION')
    if region:
        s3_kwargs['region_name'] = region
    return boto3.client(
        's3',
        aws_access_key_id=current_app.config.get('S3_ACCESS_KEY'),
        aws_secret_access_key=current_app.config.get('S3_SECRET_KEY'),
        config=Config(signature_version='s3v4', s3={'addressing_style': 'virtual'}),
        **s3_kwargs,
    )


def _size_of(file_storage):
    stream = getattr(file_storage, 'stream', file_storage)
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def validate_upload(file_storage, allowed_types, label):
    if file_storage is None or not getattr(file_storage, 'filename', ''):
        raise ServiceError('Aucun fichier fourni')
    if file_storage.mimetype not in allowed_types:
        raise ServiceError(f'Type de fichier non supporté. Utilisez {label}.')
    if _size_of(file_storage) > current_app.config.get('MAX_UPLOAD_BYTES', 2 * 1024 * 1024):
        raise ServiceError('Le fichier est trop volumineux (max 2 Mo).')


def save_file(file_storage, prefix="", name=None):
    """Store an upload under ``prefix/name`` and return its storage URL (s3:// or file://)."""
    backend = current_app.config.get('STORAGE_BACKEND', 'local')
    filename = secure_filename(name or file_storage.filename)
    key = f"{prefix}/{filename}" if prefix else filename

    if backend == 's3':
        bucket = current_app.config.get('S3_BUCKET')
        stream = getattr(file_storage, 'stream', file_storage)
        stream.seek(0)
        _s3_client().upload_fileobj(stream, bucket, key, ExtraArgs={'ContentType': file_storage.mimetype})
        return f"s3://{bucket}/{key}"

    d = _ensure_local_dir()
    path = os.path.join(d, key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    file_storage.save(path)
    return f"file://{os.path.abspath(path)}"


def delete_file(url):
    if not url:
        return
    if url.startswith('s3://'):
        bucket, key = url.replace('s3://', '').split('/', 1)
        _s3_client().delete_object(Bucket=bucket, Key=key)
    elif url.startswith('file://'):
        path = url.replace('file://', '')
        if os.path.exists(path):
            os.remove(path)


def download_bytes(url: str) -> bytes:
    if url.startswith('s3://'):
        bucket, key = url.replace('s3://', '').split('/', 1)
        obj = _s3_client().get_object(Bucket=bucket, Key=key)
        return obj['Body'].read()
    elif url.startswith('file://'):
        path = url.replace('file://', '')
        with open(path, 'rb') as f:
            return f.read()
    else:
        raise ValueError("Unsupported URL scheme")


def guess_mimetype(url):
    return mimetypes.guess_type(url)[0] or 'application/octet-stream'


def extension_for(file_storage, default):
    name = secure_filename(file_storage.filename or '')
    ext = name.rsplit('.', 1)[-1].lower() if '.' in name else ''
    return ext or default
