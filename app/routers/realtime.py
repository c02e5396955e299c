# app/routers/realtime.py
"""
Push channel for the live product list.

Frames are JSON objects: {"event": "<name>", "data": <payload>}

  client -> server
    newProduct          product fields, same as POST /products
    deleteProduct       product id
    getInitialProducts  no data; answered once per connection with
                        productsUpdate to the caller

  server -> client
    productsUpdate      full listing, after every add/delete
    productError        message for a rejected event or unreadable frame
"""
import json
import logging
import uuid
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import get_settings
from app.core.errors import AppError, InvalidIdentifier
from app.database import engine
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate
from app.services.broadcaster import (
    PRODUCT_ERROR,
    PRODUCTS_UPDATE,
    make_message,
    product_broadcaster,
)
from app.services.product_service import ProductService

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

repo = ProductRepository()
service = ProductService(repo, publisher=product_broadcaster)


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def _create(data: Any) -> None:
    payload = ProductCreate.model_validate(data)
    with Session(engine) as session:
        service.create_product(session, payload)


def _delete(data: Any) -> None:
    try:
        product_id = uuid.UUID(str(data))
    except ValueError:
        raise InvalidIdentifier(data)
    with Session(engine) as session:
        service.delete_product(session, product_id)


def _listing() -> list[dict[str, Any]]:
    with Session(engine) as session:
        return service.listing_payload(session)


async def _send_listing(websocket: WebSocket) -> None:
    listing = await run_in_threadpool(_listing)
    await websocket.send_json(make_message(PRODUCTS_UPDATE, listing))


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json(make_message(PRODUCT_ERROR, message))


def _decode_frame(message: dict[str, Any]) -> Any:
    """JSON payload of a text or binary frame; ValueError when there is none."""
    text = message.get("text")
    if text is None:
        raw = message.get("bytes")
        if raw is None:
            raise ValueError("empty frame")
        text = raw.decode("utf-8")
    return json.loads(text)


class _Connection:
    """Per-socket state."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.initial_sent = False

    async def send_initial(self) -> None:
        await _send_listing(self.websocket)
        self.initial_sent = True


async def _handle(conn: _Connection, message: Any) -> None:
    websocket = conn.websocket
    if not isinstance(message, dict):
        await _send_error(websocket, "Messages must be JSON objects with an 'event' key")
        return

    event = message.get("event")
    data = message.get("data")

    try:
        if event == "newProduct":
            await run_in_threadpool(_create, data)
        elif event == "deleteProduct":
            await run_in_threadpool(_delete, data)
        elif event == "getInitialProducts":
            # answered once; later changes arrive as productsUpdate pushes
            if conn.initial_sent:
                await _send_error(websocket, "Initial products were already sent")
            else:
                await conn.send_initial()
        else:
            await _send_error(websocket, f"Unknown event: {event!r}")
    except ValidationError as exc:
        await _send_error(websocket, _validation_message(exc))
    except AppError as exc:
        logger.info("Realtime %s rejected: %s", event, exc.message)
        await _send_error(websocket, exc.message)


@router.websocket(settings.REALTIME_PATH)
async def products_socket(websocket: WebSocket):
    await websocket.accept()
    conn = _Connection(websocket)
    product_broadcaster.subscribe(websocket)
    try:
        if settings.REALTIME_SEND_ON_CONNECT:
            await conn.send_initial()
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            try:
                message = _decode_frame(frame)
            except ValueError:
                await _send_error(websocket, "Malformed JSON frame")
                continue
            await _handle(conn, message)
    except WebSocketDisconnect:
        logger.debug("Realtime client disconnected")
    finally:
        product_broadcaster.unsubscribe(websocket)
