from __future__ import annotations

import os
import json
import asyncio
from typing import AsyncGenerator, Optional, List
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse
import redis.asyncio as aioredis

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
STREAM = os.getenv("EVENTS_STREAM", "pointsledger.events")
GROUP = os.getenv("SSE_GROUP", "sse_gateway")

# event fields that name an identity
IDENTITY_FIELDS = ("identity", "owner", "target", "sender", "recipient")

app = FastAPI(title="Points Ledger SSE Gateway")


async def ensure_group(r):
    try:
        await r.xgroup_create(name=STREAM, groupname=GROUP, id="$", mkstream=True)
    except Exception as e:  # BUSYGROUP
        if "BUSYGROUP" in str(e):
            return
        raise


def _match_filters(js: str, types: Optional[List[str]], identities: Optional[List[str]]) -> bool:
    try:
        data = json.loads(js)
    except ValueError:
        return False
    ev = data.get("event", {})
    t = ev.get("event_type")
    named = {ev.get(k) for k in IDENTITY_FIELDS if ev.get(k)}
    ok_t = True if not types else t in types
    ok_i = True if not identities else bool(named.intersection(identities))
    return ok_t and ok_i


async def event_stream(types: Optional[List[str]], identities: Optional[List[str]]) -> AsyncGenerator[bytes, None]:
    r = aioredis.from_url(REDIS_URL, decode_responses=True)
    await ensure_group(r)
    consumer = os.getenv("SSE_CONSUMER", os.uname().nodename)
    try:
        while True:
            resp = await r.xreadgroup(GROUP, consumer, {STREAM: ">"}, count=100, block=15000)
            if resp:
                for _stream, entries in resp:
                    for msg_id, fields in entries:
                        js = fields.get("json", "")
                        if _match_filters(js, types, identities):
                            yield f"event: ledger\ndata: {js}\n\n".encode()
                        await r.xack(STREAM, GROUP, msg_id)
            else:
                yield b": keep-alive\n\n"
            await asyncio.sleep(0)
    finally:
        await r.aclose()


@app.get("/events")
async def sse(request: Request, types: Optional[str] = None, identities: Optional[str] = None):
    ty = types.split(",") if types else None
    ids = identities.split(",") if identities else None
    generator = event_stream(ty, ids)
    return StreamingResponse(generator, media_type="text/event-stream")


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "stream": STREAM}
