import re
import unicodedata
from typing import Tuple, List, Optional
from uuid import uuid4

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.utils import exceptions
from chalicelib.utils.db import DbTable
from chalicelib.utils.logger import logger

SLUG_SEPARATORS = re.compile(r'[\W_]+')


def slugify(name: str) -> str:
    """
    "  Italian   Food " -> "italian-food", "Bar/Grill" -> "bar-grill"
    """
    normalized = unicodedata.normalize('NFKC', name).strip().lower()
    return SLUG_SEPARATORS.sub('-', normalized).strip('-')


class Category(EntityBase):
    pk = keys_structure.categories_pk
    sk = keys_structure.categories_sk
    record_type = 'category'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'name': lambda x: isinstance(x, str) and x != '',
        'slug': lambda x: isinstance(x, str) and x != ''
    }

    optional_fields_validation = {
        'cover_img': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)
        self.name: str = kwargs.get('name')
        self.slug: str = kwargs.get('slug')
        self.cover_img: str = kwargs.get('cover_img')

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(slug=self.slug)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name': self.name,
            'slug': self.slug,
            'cover_img': self.cover_img
        }


class CategoryRepository:
    def __init__(self, table: DbTable):
        self.table = table

    def find_by_slug(self, slug: str) -> Optional[Category]:
        db_record = self.table.find_db_item(Category.pk, Category.sk.format(slug=slug))
        return Category.from_db_record(db_record) if db_record else None

    def find_all(self) -> List[Category]:
        return [Category.from_db_record(record) for record in self.table.query_items_paged(Category.pk)]

    def get_or_create(self, name: str) -> Category:
        category_name = name.strip()
        slug = slugify(category_name)
        if not slug:
            raise exceptions.ValidationException('Category name must contain at least one letter or digit')

        category = self.find_by_slug(slug)
        if category is not None:
            return category

        category = Category(id_=str(uuid4()), name=category_name, slug=slug)
        try:
            category.create_db_record(self.table, unique=True)
        except exceptions.RecordAlreadyExists:
            logger.info(f'get_or_create ::: category {slug=} was created concurrently, re-fetching')
            category = self.find_by_slug(slug)
            if category is None:
                raise
        return category
