from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, g, abort

from models import storage
from models.todo import Todo
from models.schemas.todo import TodoCreateSchema, TodoOutSchema
from utils.decorators import jwt_required
from utils.security import utcnow

bp = Blueprint("todos", __name__)

todo_create_schema = TodoCreateSchema()
todo_out_schema = TodoOutSchema()
todos_out_schema = TodoOutSchema(many=True)

MAX_LIMIT = 100


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def _get_own_todo_or_404(todo_id: int) -> Todo:
    # someone else's todo is indistinguishable from a missing one
    session = storage.get_session()
    todo = (
        session.query(Todo)
        .filter(Todo.id == todo_id, Todo.user_id == g.current_user_id)
        .first()
    )
    if not todo:
        abort(404, description="Todo not found")
    return todo


@bp.get("/todos")
@jwt_required()
def list_todos():
    """
    List the current user's todos, newest first.
    ---
    tags:
      - Todos
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, required: false }
      - { in: query, name: limit, type: integer, required: false }
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    session = storage.get_session()
    page, limit = parse_pagination()

    query = session.query(Todo).filter(Todo.user_id == g.current_user_id)

    total = query.count()
    rows = query.order_by(Todo.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "data": todos_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total}
        }
    )


@bp.post("/todos")
@jwt_required()
def create_todo():
    """
    Create a todo for the current user. The date is set by the server.
    ---
    tags:
      - Todos
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [value]
          properties:
            value: { type: string }
    responses:
      201: { description: Created }
      400: { description: Validation error }
      401: { description: Unauthorized }
    """
    payload = request.get_json(silent=True) or {}
    data = todo_create_schema.load(payload)

    todo = Todo(user_id=g.current_user_id, value=data["value"], date=utcnow())
    storage.new(todo)
    storage.save()

    return jsonify(
        {
            "data": todo_out_schema.dump(todo)
        }
    ), 201


@bp.get("/todos/<int:todo_id>")
@jwt_required()
def get_todo(todo_id: int):
    """
    Get one of the current user's todos.
    ---
    tags:
      - Todos
    security:
      - Bearer: []
    parameters:
      - in: path
        name: todo_id
        type: integer
        required: true
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      404: { description: Todo not found }
    """
    todo = _get_own_todo_or_404(todo_id)
    return jsonify(
        {
            "data": todo_out_schema.dump(todo)
        }
    ), 200


@bp.delete("/todos/<int:todo_id>")
@jwt_required()
def delete_todo(todo_id: int):
    """
    Delete one of the current user's todos.
    ---
    tags:
      - Todos
    security:
      - Bearer: []
    parameters:
      - in: path
        name: todo_id
        type: integer
        required: true
    responses:
      204: { description: Deleted }
      401: { description: Unauthorized }
      404: { description: Todo not found }
    """
    todo = _get_own_todo_or_404(todo_id)
    storage.delete(todo)
    storage.save()
    return ("", 204)
