import os
import time
from io import BytesIO
from typing import Optional

from PIL import Image

from chalicelib.constants.constants import UPLOADS_BUCKET_NAME
from chalicelib.utils.logger import logger, log_exception


def uploads_bucket():
    return os.environ.get('UPLOADS_BUCKET_NAME', UPLOADS_BUCKET_NAME)


def max_image_width():
    return int(os.environ.get('MAX_IMG_WIDTH', 1200))


def get_resize_width_height(image: Image, max_width: int):
    width, height = image.size
    divider = max([width, height]) / max_width
    return int(width / divider), int(height / divider)


def compress_image(body: bytes, max_width: int) -> bytes:
    """
    Downscale the image when it is larger than max_width, other images are returned unchanged
    """
    image = Image.open(BytesIO(body))
    if max(image.size) <= max_width:
        return body
    image_format = image.format or 'JPEG'
    image = image.resize(size=get_resize_width_height(image, max_width))
    buf = BytesIO()
    image.save(buf, format=image_format, optimize=True)
    return buf.getvalue()


def generate_object_name(filename: str) -> str:
    return f'{int(time.time() * 1000)}{filename}'


class S3Uploader:
    def __init__(self, s3_client, bucket: str = None, max_width: int = None):
        self.s3_client = s3_client
        self.bucket = bucket or uploads_bucket()
        self.max_width = max_width or max_image_width()

    def public_url(self, object_name: str) -> str:
        return f'https://{self.bucket}.s3.amazonaws.com/{object_name}'

    def upload_file(self, body: bytes, filename: str, content_type: str) -> Optional[str]:
        """
        Uploads the file with public-read ACL
        :return:
        public url of the object, None if the upload failed
        """
        object_name = generate_object_name(filename)
        try:
            if content_type and content_type.startswith('image/'):
                body = compress_image(body, self.max_width)
            self.s3_client.put_object(
                Body=body,
                Bucket=self.bucket,
                Key=object_name,
                ContentType=content_type or 'application/octet-stream',
                ACL='public-read'
            )
        except Exception as error:
            log_exception(error, msg=f'upload_file ::: could not upload {object_name=}')
            return None
        logger.info(f'upload_file:: SUCCESS, {object_name=}')
        return self.public_url(object_name)
