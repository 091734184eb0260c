from marshmallow import Schema, fields, validate, post_load, ValidationError, RAISE

from models.schemas.common import validate_and_normalize_isbn


class BookCreateSchema(Schema):
    class Meta:
        unknown = RAISE

    img = fields.Url(required=True)
    isbn = fields.String(required=True)  # we will normalize/validate
    title = fields.String(required=True, validate=validate.Length(min=1, max=200))
    last_name = fields.String(required=True, validate=validate.Length(min=1, max=100), data_key="lastName")
    first_name = fields.String(required=True, validate=validate.Length(min=1, max=100), data_key="firstName")
    editorial = fields.String(required=True, validate=validate.Length(min=1, max=255))
    price = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))
    stock = fields.Integer(load_default=0, validate=validate.Range(min=0))
    latest_book = fields.Boolean(load_default=False, data_key="latestBook")
    fanzine = fields.Boolean(load_default=False)
    url = fields.Url(required=True)

    @post_load
    def _normalize(self, data, **kwargs):
        # Replace input 'isbn' with the normalized form; trim text fields
        if "isbn" in data:
            data["isbn"] = validate_and_normalize_isbn(data["isbn"])
        for key in ("title", "last_name", "first_name", "editorial"):
            if key in data:
                data[key] = data[key].strip()
        return data


class BookUpdateSchema(BookCreateSchema):
    """All optional, but validated if present."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, partial=True, **kwargs)


class BookOutSchema(Schema):
    id = fields.String()
    img = fields.String()
    isbn = fields.String()  # already normalized in DB
    title = fields.String()
    last_name = fields.String(data_key="lastName")
    first_name = fields.String(data_key="firstName")
    author_full_name = fields.String(data_key="authorFullName")
    editorial = fields.String()
    price = fields.Decimal(as_string=True)
    stock = fields.Integer()
    in_stock = fields.Boolean(data_key="inStock")
    latest_book = fields.Boolean(data_key="latestBook")
    fanzine = fields.Boolean()
    url = fields.String()
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class BookSearchSchema(Schema):
    term = fields.String(required=True, validate=validate.Length(min=1, max=100))

    @post_load
    def _strip(self, data, **kwargs):
        data["term"] = data["term"].strip()
        if not data["term"]:
            raise ValidationError({"term": ["Search term is required"]})
        return data
