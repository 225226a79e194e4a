"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from prometheus_client import CONTENT_TYPE_LATEST

from app.exporter import render_metrics
from app.schemas import DecoderStatus, ReadingsResponse, ReadingValue
from services.decoder import DecoderService, build_default_decoder
from settings import get_settings

router = APIRouter()


def get_decoder() -> DecoderService:
    return build_default_decoder()


@router.get(
    "/metrics",
    summary="Prometheus scrape endpoint for the latest meter readings.",
    response_class=Response,
)
async def metrics(decoder: DecoderService = Depends(get_decoder)) -> Response:
    payload = render_metrics(decoder.store, prefix=get_settings().metric_prefix)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


@router.get(
    "/readings",
    response_model=ReadingsResponse,
    summary="Latest value of every reading decoded so far.",
)
async def readings(decoder: DecoderService = Depends(get_decoder)) -> ReadingsResponse:
    snapshot = decoder.store.snapshot()
    values = [
        ReadingValue(name=key.name, discriminator=key.discriminator, value=value)
        for key, value in sorted(snapshot.items(), key=lambda item: str(item[0]))
    ]
    return ReadingsResponse(
        telegrams_processed=decoder.store.telegrams_processed,
        readings=values,
    )


@router.get(
    "/status",
    response_model=DecoderStatus,
    summary="Decoder counters and liveness.",
)
async def decoder_status(decoder: DecoderService = Depends(get_decoder)) -> DecoderStatus:
    stats = decoder.stats()
    return DecoderStatus(
        source=decoder.source.name,
        policy=decoder.router.policy.value,
        running=stats.running,
        telegrams=stats.telegrams,
        routed=stats.routed,
        skipped=stats.skipped,
        parse_errors=stats.parse_errors,
        unrecognized=stats.unrecognized,
        discontinuities=stats.discontinuities,
        failure=stats.failure,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    response: Response,
    decoder: DecoderService = Depends(get_decoder),
) -> dict[str, str]:
    if decoder.failure is not None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "failed", "detail": str(decoder.failure)}
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /metrics for readings and /health for service status."}
