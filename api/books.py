from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, abort, current_app

from models.schemas.book import BookCreateSchema, BookUpdateSchema, BookOutSchema, BookSearchSchema
from models.schemas.common import parse_bool
from models.user import Role
from utils.decorators import roles_required

bp = Blueprint("books", __name__)

# Schemas
book_create_schema = BookCreateSchema()
book_update_schema = BookUpdateSchema()
book_search_schema = BookSearchSchema()
book_out_schema = BookOutSchema()
books_out_schema = BookOutSchema(many=True)

MAX_LIMIT = 100


def _books():
    return current_app.extensions["bookstore"].books


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        if page < 1:
            page = 1
        if limit < 1:
            limit = 1
        if limit > MAX_LIMIT:
            limit = MAX_LIMIT
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


@bp.post("/books")
@roles_required(Role.ADMIN)
async def create_book():
    """
    Create a new book
    ---
    tags:
      - Books
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            img: { type: string, format: uri }
            isbn: { type: string, description: "ISBN-10 or ISBN-13" }
            title: { type: string, maxLength: 200 }
            firstName: { type: string }
            lastName: { type: string }
            editorial: { type: string }
            price: { type: string, example: "19.99" }
            stock: { type: integer, minimum: 0, default: 0 }
            latestBook: { type: boolean, default: false }
            fanzine: { type: boolean, default: false }
            url: { type: string, format: uri }
    responses:
      201:
        description: Created
      403:
        description: Caller is not an admin
      409:
        description: Book with same ISBN already exists
      422:
        description: Validation error
    """
    data = book_create_schema.load(request.get_json(silent=True) or {})
    book = await _books().create(data)
    return jsonify({"success": True, "data": book_out_schema.dump(book)}), 201


@bp.get("/books")
async def list_books():
    """
    List books, newest first
    ---
    tags:
      - Books
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
      - in: query
        name: fanzine
        type: boolean
      - in: query
        name: latest_book
        type: boolean
    responses:
      200:
        description: List of books
    """
    page, limit = parse_pagination()
    rows, total = await _books().list_books(
        page=page,
        limit=limit,
        fanzine=parse_bool(request.args.get("fanzine")),
        latest_book=parse_bool(request.args.get("latest_book")),
    )
    return jsonify(
        {
            "success": True,
            "data": books_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total},
        }
    )


@bp.get("/books/search")
async def search_books():
    """
    Search books by title, author, editorial or exact ISBN
    ---
    tags:
      - Books
    parameters:
      - in: query
        name: term
        type: string
        required: true
    responses:
      200:
        description: Up to 20 matches
      422:
        description: Missing or too long search term
    """
    data = book_search_schema.load({"term": request.args.get("term", "")})
    rows = await _books().search(data["term"])
    return jsonify({"success": True, "data": books_out_schema.dump(rows)})


@bp.get("/books/<book_id>")
async def get_book(book_id: str):
    """
    Get a single book by id
    ---
    tags:
      - Books
    parameters:
      - in: path
        name: book_id
        type: string
        required: true
    responses:
      200:
        description: Book found
      404:
        description: Not found
    """
    book = await _books().get(book_id)
    return jsonify({"success": True, "data": book_out_schema.dump(book)})


@bp.patch("/books/<book_id>")
@roles_required(Role.ADMIN)
async def update_book(book_id: str):
    """
    Update a book (partial)
    ---
    tags:
      - Books
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: path
        name: book_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
    responses:
      200:
        description: Updated
      400:
        description: Empty update
      404:
        description: Not found
      409:
        description: Conflict (duplicate ISBN)
      422:
        description: Validation error
    """
    data = book_update_schema.load(request.get_json(silent=True) or {})
    if not data:
        abort(400, description="No fields to update")
    book = await _books().update(book_id, data)
    return jsonify({"success": True, "data": book_out_schema.dump(book)})


@bp.delete("/books/<book_id>")
@roles_required(Role.ADMIN)
async def delete_book(book_id: str):
    """
    Delete a book
    ---
    tags:
      - Books
    security:
      - Bearer: []
    parameters:
      - in: path
        name: book_id
        type: string
        required: true
    responses:
      200:
        description: Deleted
      404:
        description: Not found
    """
    book = await _books().delete(book_id)
    return jsonify({"success": True, "message": "Book deleted", "data": {"id": book.id}})
