import json
import os
from collections import namedtuple
from typing import List

from chalicelib.constants.constants import EMAIL_FROM, VERIFICATION_SUBJECT, VERIFICATION_TEMPLATE
from chalicelib.utils.logger import logger, log_exception

EmailVar = namedtuple('EmailVar', ['key', 'value'])


def email_from():
    return os.environ.get('EMAIL_FROM', EMAIL_FROM)


class Mailer:
    def __init__(self, ses_client, sender: str = None):
        self.ses_client = ses_client
        self.sender = sender or email_from()

    def send_email(self, subject: str, template: str, to: str, email_vars: List[EmailVar]) -> bool:
        """
        Sends a SES templated email, failures are only logged
        """
        logger.info(f'Sending message to email {to=}, {subject=}, {template=}')
        template_data = {'subject': subject}
        for email_var in email_vars:
            template_data[email_var.key] = email_var.value
        try:
            response = self.ses_client.send_templated_email(
                Source=self.sender,
                Destination={'ToAddresses': [to]},
                Template=template,
                TemplateData=json.dumps(template_data)
            )
        except Exception as error:
            log_exception(error, msg=f'send_email ::: could not send {template=} to {to=}')
            return False
        logger.info(f'Message has been sent, message_id={response.get("MessageId")}')
        return True

    def send_verification_email(self, email: str, code: str) -> bool:
        return self.send_email(VERIFICATION_SUBJECT, VERIFICATION_TEMPLATE, email, [
            EmailVar('code', code),
            EmailVar('username', email)
        ])
