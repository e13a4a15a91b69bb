from fastapi import APIRouter, Depends, HTTPException, Header, Request

from taixiu.api.schemas import (HistoryOut, IngestIn, IngestOut, MarkovOut, PatternsOut, PredictOut, RoundsOut,
                                StatsOut, StoredRound, SummaryOut)
from taixiu.services import PredictionService

router = APIRouter()


def get_service(request: Request) -> PredictionService:
    return request.app.state.service


def _auth(request: Request, api_key_header: str | None = Header(default=None, alias="X-API-Key")):
    key = get_service(request).cfg.api_key
    if key and api_key_header != key:
        raise HTTPException(status_code=401, detail="Invalid API key")


@router.get('/predict', response_model=PredictOut)
async def predict(svc: PredictionService = Depends(get_service)):
    result = await svc.predict()
    if result is None:
        raise HTTPException(503, detail="no prediction available: upstream unavailable or empty")
    return result.model_dump()


@router.post('/ingest', response_model=IngestOut)
async def ingest(data: IngestIn, svc: PredictionService = Depends(get_service), ok=Depends(_auth)):
    rec, result = await svc.ingest(data.d1, data.d2, data.d3, sid=data.sid)
    return {
        'stored_round': StoredRound(sid=rec.sid, d1=rec.d1, d2=rec.d2, d3=rec.d3, total=rec.total, label=rec.label),
        'prediction': result.model_dump() if result else None,
    }


@router.get('/history', response_model=HistoryOut)
async def history(limit: int | None = None, svc: PredictionService = Depends(get_service)):
    return {'items': svc.history(limit)}


@router.get('/rounds', response_model=RoundsOut)
async def rounds(limit: int | None = None, svc: PredictionService = Depends(get_service)):
    out = svc.rounds(limit)
    return {
        'total': out['total'],
        'data': [StoredRound(sid=r.sid, d1=r.d1, d2=r.d2, d3=r.d3, total=r.total, label=r.label) for r in out['data']],
    }


@router.get('/summary', response_model=SummaryOut)
async def summary(svc: PredictionService = Depends(get_service)):
    return svc.summary()


@router.get('/stats', response_model=StatsOut)
async def stats(svc: PredictionService = Depends(get_service)):
    return svc.stats()


@router.get('/patterns', response_model=PatternsOut)
async def patterns(min_k: int = 3, svc: PredictionService = Depends(get_service)):
    return await svc.patterns(min_run=min_k)


@router.get('/markov', response_model=MarkovOut)
async def markov(svc: PredictionService = Depends(get_service)):
    return await svc.markov()
