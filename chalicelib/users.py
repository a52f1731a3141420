from typing import Tuple, List, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Attr

from chalicelib import ownership
from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import UserRole
from chalicelib.inputs import CreateAccountInput, LoginInput, EditProfileInput, VerifyEmailInput
from chalicelib.utils import app as utils_app, auth as utils_auth, exceptions, passwords
from chalicelib.utils.app import core_output
from chalicelib.utils.data import utc_now, to_iso
from chalicelib.utils.db import DbTable
from chalicelib.utils.logger import logger
from chalicelib.utils.notifications import Mailer

EMAIL_TAKEN_MESSAGE = 'There is a user with that email already'


def normalize_email(email: str) -> str:
    return email.strip().lower()


class User(EntityBase):
    pk = keys_structure.users_pk
    sk = keys_structure.users_sk
    record_type = 'user'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'role': lambda x: x in UserRole.all,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'email': lambda x: isinstance(x, str),
        'password': passwords.is_password_hash,
        'verified': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.email: str = kwargs.get('email')
        self.password: str = kwargs.get('password')
        self.role: str = kwargs.get('role')
        self.verified: bool = kwargs.get('verified', False)
        self.date_created: str = kwargs.get('date_created') or to_iso(utc_now())
        self.date_updated: str = kwargs.get('date_updated') or self.date_created

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'email': self.email,
            'password': self.password,
            'role': self.role,
            'verified': self.verified,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def set_password(self, plain_password: str):
        """ Only a hash is ever kept on the entity """
        self.password = passwords.hash_password(plain_password)

    def check_password(self, plain_password: str) -> bool:
        return passwords.verify_password(plain_password, self.password)


class UserEmail(EntityBase):
    """
    Marker record reserving an email for one user
    """
    pk = keys_structure.user_emails_pk
    sk = keys_structure.user_emails_sk
    record_type = 'user_email'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id=None, **kwargs):
        EntityBase.__init__(self, id_)
        self.user_id: str = user_id

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(email=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id
        }

    def reserve(self, table: DbTable):
        try:
            self.create_db_record(table, unique=True)
        except exceptions.RecordAlreadyExists:
            raise exceptions.RecordAlreadyExists(EMAIL_TAKEN_MESSAGE)


class Verification(EntityBase):
    pk = keys_structure.verifications_pk
    sk = keys_structure.verifications_sk
    record_type = 'verification'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, user_id=None, **kwargs):
        EntityBase.__init__(self, id_)
        self.user_id: str = user_id
        self.date_created: str = kwargs.get('date_created') or to_iso(utc_now())

    @property
    def code(self) -> str:
        return self.id_

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(code=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'user_id': self.user_id,
            'date_created': self.date_created
        }


class UserRepository:
    def __init__(self, table: DbTable):
        self.table = table

    def find_by_id(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        db_record = self.table.find_db_item(User.pk, User.sk.format(user_id=user_id))
        return User.from_db_record(db_record) if db_record else None

    def find_by_email(self, email: str) -> Optional[User]:
        db_record = self.table.find_db_item(UserEmail.pk, UserEmail.sk.format(email=normalize_email(email)))
        return self.find_by_id(db_record['user_id']) if db_record else None

    def find_verification(self, code: str) -> Optional[Verification]:
        db_record = self.table.find_db_item(Verification.pk, Verification.sk.format(code=code))
        return Verification.from_db_record(db_record) if db_record else None

    def find_verifications_of_user(self, user_id: str) -> List[Verification]:
        db_records = self.table.query_items_paged(Verification.pk, filter_expression=Attr('user_id').eq(user_id))
        return [Verification.from_db_record(record) for record in db_records]


class UserService:
    def __init__(self, table: DbTable, users: UserRepository, mailer: Mailer):
        self.table = table
        self.users = users
        self.mailer = mailer

    def find_user(self, user_id: str) -> Optional[User]:
        return self.users.find_by_id(user_id)

    def _issue_verification(self, user: User) -> Verification:
        for verification in self.users.find_verifications_of_user(user.id_):
            verification.delete_db_record(self.table)
        verification = Verification(id_=str(uuid4()), user_id=user.id_)
        verification.create_db_record(self.table)
        self.mailer.send_verification_email(user.email, verification.code)
        return verification

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not create account')
    def create_account(self, account_input: CreateAccountInput):
        user = User(
            id_=str(uuid4()),
            email=normalize_email(account_input.email),
            role=account_input.role
        )
        user.set_password(account_input.password)
        user_email = UserEmail(id_=user.email, user_id=user.id_)
        user_email.reserve(self.table)
        try:
            user.create_db_record(self.table)
        except Exception:
            logger.warning(f'create_account ::: could not create user, releasing email {user.email}')
            user_email.delete_db_record(self.table)
            raise
        self._issue_verification(user)
        return core_output()

    @utils_app.log_start_finish
    @utils_app.service_boundary("Can't log user in.")
    def login(self, login_input: LoginInput):
        user = ownership.ensure_exists(self.users.find_by_email(login_input.email), 'User not found')
        if not user.check_password(login_input.password):
            logger.warning(f'login ::: wrong password for user_id={user.id_}')
            raise exceptions.AccessDenied('Wrong password')
        return core_output(token=utils_auth.sign_token(user.id_))

    @utils_app.service_boundary('Could not load user')
    def user_profile(self, user_id: str):
        user = ownership.ensure_exists(self.users.find_by_id(user_id), 'User not found')
        return core_output(user=user.to_ui())

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not update profile.')
    def edit_profile(self, user: User, profile_input: EditProfileInput):
        fields_to_update = []
        new_email = normalize_email(profile_input.email) if profile_input.email else None
        previous_email = user.email
        if new_email and new_email != previous_email:
            UserEmail(id_=new_email, user_id=user.id_).reserve(self.table)
            user.email = new_email
            user.verified = False
            fields_to_update.extend(['email', 'verified'])
        if profile_input.password:
            user.set_password(profile_input.password)
            fields_to_update.append('password')

        user.update_db_record(self.table, fields_to_update)
        if 'email' in fields_to_update:
            UserEmail(id_=previous_email, user_id=user.id_).delete_db_record(self.table)
            self._issue_verification(user)
        return core_output()

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not verify email.')
    def verify_email(self, verify_input: VerifyEmailInput):
        verification = ownership.ensure_exists(self.users.find_verification(verify_input.code),
                                               'Verification not found.')
        user = ownership.ensure_exists(self.users.find_by_id(verification.user_id), 'User not found')
        user.verified = True
        user.update_db_record(self.table, ['verified'])
        verification.delete_db_record(self.table)
        return core_output()
