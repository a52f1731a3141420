import re
from collections import namedtuple

from chalice.app import Request
from requests_toolbelt.multipart.decoder import MultipartDecoder, ImproperBodyPartContentException, \
    NonMultipartContentTypeException

from chalicelib.utils import exceptions
from chalicelib.utils.app import core_output
from chalicelib.utils.logger import logger
from chalicelib.utils.s3 import S3Uploader

FILE_FIELD_NAME = 'file'
DISPOSITION_PARAM = re.compile(r'\b(name|filename)="([^"]*)"')

UploadedFile = namedtuple('UploadedFile', ['content', 'filename', 'content_type'])


def parse_content_disposition(header: bytes) -> dict:
    return dict(DISPOSITION_PARAM.findall(header.decode('utf-8')))


def parse_multipart_request_data(current_request: Request) -> UploadedFile:
    content_type = current_request.headers.get('content-type', '')
    try:
        decoder = MultipartDecoder(current_request.raw_body, content_type)
    except (ImproperBodyPartContentException, NonMultipartContentTypeException) as error:
        raise exceptions.ValidationException(f'Request body is not a valid multipart form: {error}')

    for part in decoder.parts:
        disposition = parse_content_disposition(part.headers.get(b'Content-Disposition', b''))
        if disposition.get('name') != FILE_FIELD_NAME:
            continue
        part_content_type = part.headers.get(b'Content-Type', b'application/octet-stream').decode('utf-8')
        return UploadedFile(part.content, disposition.get('filename') or 'file', part_content_type)

    raise exceptions.ValidationException(f'Field {FILE_FIELD_NAME} is required')


class UploadService:
    def __init__(self, uploader: S3Uploader):
        self.uploader = uploader

    def upload_file(self, uploaded_file: UploadedFile):
        """
        :return:
        public url of the stored object, url is None when the upload failed
        """
        url = self.uploader.upload_file(uploaded_file.content, uploaded_file.filename, uploaded_file.content_type)
        logger.info(f'upload_file ::: filename={uploaded_file.filename} {url=}')
        return core_output(url=url)
