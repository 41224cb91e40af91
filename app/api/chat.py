"""Workspace chat API endpoints."""

import json
from collections.abc import AsyncGenerator
from uuid import UUID

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from app.core.config import get_settings
from app.core.errors import ActionError, NotFoundError
from app.core.logging import get_logger
from app.core.schemas_workspace import ChatRequest
from app.db.session_messages import insert_message, list_messages
from app.db.sessions import get_session
from app.services.llm_gateway import stream_chat
from app.services.workspace_chat import accept_chat_message, assemble_chat_context

logger = get_logger(__name__)

router = APIRouter()


def _event(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.post("/sessions/{session_id}/chat")
async def chat_with_session(session_id: UUID, request: ChatRequest) -> StreamingResponse:
    """
    Stream an assistant reply about the session's assets as Server-Sent Events.

    Events are `delta` (a text chunk), then `done` with the saved message id and
    full text, or `error` if the model call fails mid-stream.
    """
    asset_type = request.asset_type.value if request.asset_type else None
    try:
        context = assemble_chat_context(str(session_id), asset_type)
        insert_message(session_id, "user", request.message, asset_type)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to prepare chat for session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to prepare chat") from e

    async def generate() -> AsyncGenerator[str, None]:
        full_text = ""
        try:
            async for text in stream_chat(
                [*context.messages, {"role": "user", "content": request.message}],
                system=context.system_prompt,
                session_id=session_id,
            ):
                full_text += text
                yield _event({"type": "delta", "text": text})

            message = insert_message(
                session_id,
                "assistant",
                full_text,
                asset_type,
                {"model": get_settings().CHAT_MODEL},
            )
            yield _event({"type": "done", "messageId": message["id"], "fullText": full_text})

        except Exception as e:
            logger.error(f"Chat stream failed: {e}", exc_info=True, extra={"session_id": str(session_id)})
            yield _event({"type": "error", "message": str(e) or "Chat failed"})

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/sessions/{session_id}/chat/{message_id}/accept", status_code=201)
async def accept_chat_proposal(session_id: UUID, message_id: UUID) -> dict:
    """Save the content an assistant reply proposed as a new active version."""
    try:
        version = await accept_chat_message(str(session_id), str(message_id))
        return {"version": version}

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ActionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to accept chat message {message_id}")
        raise HTTPException(status_code=500, detail="Failed to accept chat message") from e


@router.get("/sessions/{session_id}/messages")
async def list_session_messages(session_id: UUID) -> dict:
    """Chat history for a session, oldest first."""
    try:
        if not get_session(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        messages = list_messages(session_id)
        return {"messages": messages, "count": len(messages)}

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to list messages for session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to list messages") from e
