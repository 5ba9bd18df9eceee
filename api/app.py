from __future__ import annotations
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import os, uuid, threading, typing as t

# ---- Engine imports ----
from leadership_core import question_bank, archetypes as archetype_store, norms as norm_store, fusion
from leadership_core.engine import AssessmentSession
from leadership_core.types import ResponseRecord, ScaledAnswer
from leadership_core.llm_bridge import backend_in_use, backend_ready
from leadership_core.question_bank import CatalogueCache
from leadership_core.config import AUDIT_EXPORT_ENABLED, CATALOGUE_TTL_SEC
from leadership_core.audit_export import to_json as audit_to_json, to_csv as audit_to_csv
from .storage import STORE, utcnow_iso

BANK = CatalogueCache(lambda: question_bank.load_bank(), CATALOGUE_TTL_SEC)
ARCHETYPES = CatalogueCache(lambda: archetype_store.load_archetypes(), CATALOGUE_TTL_SEC)
NORMS = CatalogueCache(lambda: norm_store.load_norms(), CATALOGUE_TTL_SEC)

SESS: dict[str, AssessmentSession] = {}
SESSION_INFO: dict[str, dict[str, t.Any]] = {}
_LOCKS: dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()

app = FastAPI(title="Leadership Assessment API")

@app.get("/")
def root():
    return {"status": "ok", "service": "leadership-assessment-api"}

ALLOWED_ORIGINS = [o for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class StartReq(BaseModel):
    tier: str = "quick"  # "quick" | "deep"
    user_id: str | None = None

class UpgradeReq(BaseModel):
    result_token: str
    user_id: str | None = None

class AnswerIn(BaseModel):
    item_id: str
    value: int | str
    rt_ms: int | None = None

class RoundReq(BaseModel):
    answers: list[AnswerIn] = Field(default_factory=list)

# ---- Helpers ----
def _session_lock(sid: str) -> threading.Lock:
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(sid, threading.Lock())


def _get_session(sid: str) -> AssessmentSession:
    sess = SESS.get(sid)
    if not sess:
        raise HTTPException(404, "session not found")
    return sess


def _serialize_item(it) -> dict[str, t.Any]:
    return {
        "id": it.id,
        "dimension": it.dimension,
        "type": it.type,  # "likert"|"situational"|"forced_choice"
        "text": it.text,
        "options": [{"key": o.key, "text": o.text} for o in it.options] or None,
    }


def _record_row(rec: ResponseRecord) -> dict[str, t.Any]:
    ans = rec.answer
    return {
        "item_id": rec.item_id,
        "value": ans.value if isinstance(ans, ScaledAnswer) else ans.key,
        "rt_ms": rec.time_to_answer_ms,
    }


def _progress(sid: str, sess: AssessmentSession) -> dict[str, t.Any]:
    st = sess.state
    return {
        "session_id": sid,
        "tier": st.tier,
        "phase": st.phase,
        "round": st.round_number,
        "total_rounds": st.total_rounds,
        "answered": len(st.responses),
        "items": [_serialize_item(it) for it in sess.pending_items()],
        "done": st.phase == "exhausted",
    }


def _open_session(tier: str, user_id: str | None, prior=None, upgrade_from: str | None = None) -> dict[str, t.Any]:
    try:
        sess = AssessmentSession(
            tier=tier,
            items=BANK.get(),
            archetypes=ARCHETYPES.get(),
            norms=NORMS.get(),
            prior=prior,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    sid = str(uuid.uuid4())
    SESS[sid] = sess
    started_at = utcnow_iso()
    SESSION_INFO[sid] = {"user_id": user_id, "tier": tier, "started_at": started_at, "upgrade_from": upgrade_from}
    with _session_lock(sid):
        sess.next_batch()
    if user_id:
        STORE.record_active(sid, {
            "sessionId": sid,
            "userId": user_id,
            "tier": tier,
            "startedAt": started_at,
            "lastUpdated": started_at,
            "round": sess.state.round_number,
        })
    return _progress(sid, sess)

# ---- Health ----
@app.get("/health")
def health():
    reasoning = backend_in_use()
    narrative = backend_in_use("NARRATIVE_BACKEND")
    return {
        "reasoning_backend": reasoning,
        "reasoning_ready": backend_ready(reasoning),
        "narrative_backend": narrative,
        "narrative_ready": backend_ready(narrative),
        "active_sessions": len(SESS),
    }

# ---- Assessment flow ----
@app.post("/assessment/start")
def start(req: StartReq):
    return _open_session(req.tier, req.user_id)


@app.post("/assessment/upgrade")
def upgrade(req: UpgradeReq):
    stored = STORE.load_result(req.result_token)
    if not stored:
        raise HTTPException(404, "result not found")
    if stored.get("tier") != "quick":
        raise HTTPException(409, "only quick results can be upgraded")
    prior = fusion.from_dict(stored.get("profile") or {})
    return _open_session("deep", req.user_id or (stored.get("meta") or {}).get("userId"),
                         prior=prior, upgrade_from=req.result_token)


@app.get("/assessment/{sid}/resume")
def resume(sid: str):
    sess = _get_session(sid)
    with _session_lock(sid):
        return _progress(sid, sess)


@app.post("/assessment/{sid}/round")
def submit_round(sid: str, req: RoundReq):
    sess = _get_session(sid)
    with _session_lock(sid):
        round_no = sess.state.round_number
        try:
            accepted = sess.submit((a.item_id, a.value, a.rt_ms) for a in req.answers)
        except ValueError as e:
            raise HTTPException(409, str(e))
        if accepted:
            STORE.append_responses(sid, (
                {"round": round_no, "at": utcnow_iso(), **_record_row(r)}
                for r in sess.state.responses[-accepted:]
            ))
        sess.next_batch()
        info = SESSION_INFO.get(sid, {})
        if info.get("user_id"):
            STORE.touch_active(sid, lastUpdated=utcnow_iso(), round=sess.state.round_number)
        return {"accepted": accepted, **_progress(sid, sess)}


@app.get("/assessment/{sid}/responses")
def response_log(sid: str):
    rows = STORE.load_responses(sid)
    if not rows and sid not in SESS:
        raise HTTPException(404, "session not found")
    return {"session_id": sid, "responses": rows}


@app.post("/assessment/{sid}/finish")
def finish(sid: str):
    sess = _get_session(sid)
    with _session_lock(sid):
        info = SESSION_INFO.get(sid, {})
        try:
            result = sess.finalize()
        except ValueError as e:
            raise HTTPException(400, str(e))
        token = uuid.uuid4().hex
        created = utcnow_iso()
        result["token"] = token
        result["created_at"] = created
        result["meta"] = {
            "sessionId": sid,
            "userId": info.get("user_id"),
            "upgradeFrom": info.get("upgrade_from"),
            "createdAt": created,
        }
        STORE.save_result(token, result, {
            "sessionId": sid,
            "userId": info.get("user_id"),
            "tier": result["tier"],
            "createdAt": created,
            "primary": result["match"]["primary_id"],
        })
        if info.get("user_id"):
            STORE.clear_active(sid)
    SESS.pop(sid, None)
    SESSION_INFO.pop(sid, None)
    with _LOCKS_GUARD:
        _LOCKS.pop(sid, None)
    return result

# ---- Results ----
@app.get("/results/{token}")
def get_result(token: str):
    result = STORE.load_result(token)
    if not result:
        raise HTTPException(404, "result not found")
    return result


@app.get("/results/{token}/audit.json")
def get_audit_json(token: str):
    if not AUDIT_EXPORT_ENABLED:
        raise HTTPException(404, "audit export disabled")
    result = STORE.load_result(token)
    if not result:
        raise HTTPException(404, "result not found")
    payload = audit_to_json(result.get("audit_events") or [])
    return {"result_id": token, **payload}


@app.get("/results/{token}/audit.csv")
def get_audit_csv(token: str):
    if not AUDIT_EXPORT_ENABLED:
        raise HTTPException(404, "audit export disabled")
    result = STORE.load_result(token)
    if not result:
        raise HTTPException(404, "result not found")
    body = audit_to_csv(result.get("audit_events") or [])
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{token}_audit.csv\""},
    )


@app.get("/users/{user_id}/results")
def list_results(user_id: str):
    return {"results": STORE.results_for_user(user_id)}


@app.get("/users/{user_id}/sessions/active")
def list_active_sessions(user_id: str):
    return {"sessions": STORE.active_for_user(user_id)}


@app.post("/admin/catalogue/invalidate")
def invalidate_catalogues():
    for cache in (BANK, ARCHETYPES, NORMS):
        cache.invalidate()
    return {"ok": True}
