from typing import Tuple, Dict, List

from chalicelib.constants.substitute_keys import from_db
from chalicelib.utils import exceptions
from chalicelib.utils.data import substitute_keys, utc_now, to_iso
from chalicelib.utils.db import DbTable
from chalicelib.utils.logger import logger


class EntityBase:
    pk = None
    sk = None
    record_type = ''

    required_immutable_fields_validation = {}
    required_mutable_fields_validation = {}
    optional_fields_validation = {}

    # mutable fields which are removed from the record when set to an empty value
    deletable_fields = []

    def __init__(self, id_):
        self.id_: str = id_

    @classmethod
    def from_db_record(cls, record: Dict):
        """
        Entity initialization from a stored record
        """
        return cls(**{key: value for key, value in record.items()
                      if key not in ('partkey', 'sortkey', 'record_type')})

    def _get_pk_sk(self) -> Tuple[str, str]:
        """
        Should be re-implemented in each child class
        :return:
        partkey, sortkey of db item for child
        """
        return self.pk, self.sk

    def _get_key(self) -> Dict:
        pk, sk = self._get_pk_sk()
        return {'partkey': pk, 'sortkey': sk}

    def _to_dict(self) -> Dict:
        """
        Should be re-implemented in each child class
        :return:
        dict of item's attributes
        """
        return {
            'id_': self.id_
        }

    def _init_db_record(self) -> Dict:
        """
        New DB record initialization
        :return:
        db record
        """
        return {
            **self._get_key(),
            'record_type': self.record_type,
            **{key: value for key, value in self._to_dict().items() if value is not None}
        }

    @staticmethod
    def raise_validation_error(key):
        message = f'Validation error occurred while validating the field={key}'
        logger.error(f"raise_validation_error ::: {message}")
        raise exceptions.ValidationException(message)

    def _validate_mandatory_fields(self, db_record: Dict):
        """
        Validates mandatory fields if all fields have correct type to put to db
        Raise ValidationException in case if a field is not valid
        """
        for key, validator_func in {
            **self.required_immutable_fields_validation,
            **self.required_mutable_fields_validation
        }.items():
            if validator_func(db_record.get(key)) is False:
                self.raise_validation_error(key)

    def _validate_optional_fields(self, db_record: Dict):
        for key, validator_func in self.optional_fields_validation.items():
            if db_record.get(key) is not None and validator_func(db_record.get(key)) is False:
                self.raise_validation_error(key)

    def _get_validated_update_dict(self, fields: List[str]) -> Dict:
        """
        Validates fields for update
        :return:
        Clean dict for update
        (fields which are not mutable or not valid are excluded)
        """
        update_dict = self._to_dict()
        clean_dict = {}
        validation_dict = {**self.required_mutable_fields_validation, **self.optional_fields_validation}
        for key in fields:
            value = update_dict.get(key)
            if key in self.deletable_fields and value in ['', None]:
                clean_dict[key] = ''
            elif key in validation_dict and validation_dict[key](value) is True:
                clean_dict[key] = value
            else:
                logger.warning(f'_get_validated_update_dict ::: {key=}, {value=} is not valid, '
                               f'removing from update dict..')
        return clean_dict

    def _update_fields_whitelist(self) -> List:
        return [*self.required_mutable_fields_validation.keys(), *self.optional_fields_validation.keys()]

    def create_db_record(self, table: DbTable, unique: bool = False) -> None:
        """
        Creates entity db record
        """
        db_record = self._init_db_record()
        self._validate_mandatory_fields(db_record)
        self._validate_optional_fields(db_record)
        table.put_db_record(db_record, unique=unique)
        logger.info(f"create_db_record ::: {self.record_type=} {self.id_=} {db_record.get('partkey')=} "
                    f"{db_record.get('sortkey')=} successfully created")

    def update_db_record(self, table: DbTable, fields: List[str], now: str = None) -> None:
        """
        Updates the given entity fields in db record
        """
        if 'date_updated' in self._update_fields_whitelist():
            self.date_updated = now or to_iso(utc_now())
            fields = [*fields, 'date_updated']
        update_dict = self._get_validated_update_dict(fields)
        table.update_db_record(
            key=self._get_key(),
            update_body=update_dict,
            allowed_attrs_to_update=self._update_fields_whitelist(),
            allowed_attrs_to_delete=self.deletable_fields
        )
        logger.info(f"update_db_record ::: {self.record_type=} {self.id_=} {list(update_dict)=} successfully updated")

    def delete_db_record(self, table: DbTable) -> None:
        table.delete_db_record(*self._get_pk_sk())
        logger.info(f"delete_db_record ::: {self.record_type=} {self.id_=} successfully deleted")

    def to_ui(self) -> Dict:
        item = self._to_dict()
        substitute_keys(dict_to_process=item, base_keys=from_db)
        return item
