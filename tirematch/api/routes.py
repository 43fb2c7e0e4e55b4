"""FastAPI route definitions for the GCI Tire matching API."""

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from tirematch.api.deps import (
    get_catalog_service,
    get_checkout_builder,
    get_installer_directory,
    get_pipeline,
    get_tires_proxy,
)
from tirematch.core.config import Settings, get_settings
from tirematch.core.enums import FailurePolicy
from tirematch.core.errors import (
    CatalogUnavailable,
    JobNotFound,
    JobStateConflict,
    UpstreamError,
    UpstreamNotConfigured,
)
from tirematch.core.logging import log_error, logger
from tirematch.models.catalog import CatalogResult
from tirematch.models.checkout import (
    CheckoutMetadata,
    CheckoutRequest,
    CheckoutResponse,
    LineItem,
)
from tirematch.models.installer import (
    InstallationJob,
    InstallerApplication,
    InstallerRecord,
    JobCreate,
    JobUpdate,
)
from tirematch.models.order import ShopifyOrder
from tirematch.models.recommendation import RecommendationRequest, RecommendationResult
from tirematch.services.catalog import CatalogService
from tirematch.services.checkout import CheckoutBuilder
from tirematch.services.installers import InstallerDirectory, new_job_reference
from tirematch.services.pipeline import RecommendationPipeline
from tirematch.services.tires_proxy import TiresProxy
from tirematch.services.webhooks import handle_order_created

router = APIRouter()

# Rate limiter (per client IP)
limiter = Limiter(key_func=get_remote_address)


def _tires_rate_limit() -> str:
    return f"{get_settings().rate_limit_requests}/minute"


def _upstream_http_error(e: UpstreamError, what: str) -> HTTPException:
    """503 when an integration is not configured, 502 when it failed."""
    if isinstance(e, UpstreamNotConfigured):
        return HTTPException(status_code=503, detail=f"{what} is not configured")
    return HTTPException(status_code=502, detail=f"{what} is unavailable")


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


@router.post("/tires")
@limiter.limit(_tires_rate_limit)
async def recommend_tires(
    request: Request,
    body: RecommendationRequest,
    pipeline: Annotated[RecommendationPipeline | None, Depends(get_pipeline)],
    proxy: Annotated[TiresProxy, Depends(get_tires_proxy)],
) -> Any:
    """
    Recommend tires for a free-text request.

    - With ``TIRES_UPSTREAM_URL`` set the body is forwarded to that service.
    - Otherwise: catalog -> LLM candidates -> inventory match.

    Rate limited per client IP.
    """
    if proxy.enabled or pipeline is None:
        try:
            return await proxy.forward(await request.json())
        except UpstreamError as e:
            log_error("Upstream AI failed", e)
            raise HTTPException(
                status_code=502,
                detail="Failed to get recommendation from upstream AI service.",
            )

    try:
        user_text = body.user_text
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        result: RecommendationResult = await pipeline.run(user_text, body.lang)
    except Exception as e:
        log_error("Recommendation pipeline failed", e, query=user_text[:50])
        raise HTTPException(status_code=500, detail="Something went wrong")
    return result


@router.get("/catalog", response_model=CatalogResult)
async def get_catalog(
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    strict: bool = False,
):
    """Tire catalog. ``?strict=true`` reports outages instead of falling back."""
    policy = FailurePolicy.PROPAGATE if strict else FailurePolicy.FALLBACK
    try:
        return await catalog.fetch_catalog(policy)
    except CatalogUnavailable as e:
        log_error("Catalog unavailable", e)
        raise HTTPException(status_code=502, detail="Catalog is unavailable")


# ---------------------------------------------------------------------------
# Installers
# ---------------------------------------------------------------------------


@router.get("/installers")
async def list_installers(
    directory: Annotated[InstallerDirectory, Depends(get_installer_directory)],
    settings: Annotated[Settings, Depends(get_settings)],
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    radius_km: Optional[float] = Query(default=None, gt=0, le=1000),
):
    """Active installers; only those within ``radius_km`` when lat/lng are given."""
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=422, detail="lat and lng must be given together")

    try:
        if lat is not None and lng is not None:
            radius = radius_km or settings.default_search_radius_km
            installers = await directory.find_nearby(lat, lng, radius)
        else:
            installers = await directory.list_active_installers()
    except UpstreamError as e:
        log_error("Failed to list installers", e)
        raise _upstream_http_error(e, "Installer directory")

    return {"installers": installers, "count": len(installers)}


@router.post("/installers/applications", response_model=InstallerRecord, status_code=201)
async def apply_as_installer(
    application: InstallerApplication,
    directory: Annotated[InstallerDirectory, Depends(get_installer_directory)],
):
    try:
        return await directory.submit_application(application)
    except UpstreamError as e:
        log_error("Failed to store installer application", e)
        raise _upstream_http_error(e, "Installer directory")


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


@router.post("/jobs", response_model=InstallationJob, status_code=201)
async def create_job(
    job: JobCreate,
    directory: Annotated[InstallerDirectory, Depends(get_installer_directory)],
):
    try:
        return await directory.create_job(job)
    except UpstreamError as e:
        log_error("Failed to create job", e)
        raise _upstream_http_error(e, "Job store")


@router.patch("/jobs/{job_id}", response_model=InstallationJob)
async def update_job(
    job_id: str,
    update: JobUpdate,
    directory: Annotated[InstallerDirectory, Depends(get_installer_directory)],
):
    try:
        return await directory.update_job(
            job_id,
            update.status,
            notes=update.notes,
            expected_status=update.expected_status,
        )
    except JobNotFound:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    except JobStateConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UpstreamError as e:
        log_error("Failed to update job", e, job_id=job_id)
        raise _upstream_http_error(e, "Job store")


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    builder: Annotated[CheckoutBuilder, Depends(get_checkout_builder)],
    directory: Annotated[InstallerDirectory, Depends(get_installer_directory)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Build a checkout URL for one tire selection.

    With installation selected, an installation line is added (when
    ``SHOPIFY_INSTALLATION_VARIANT_ID`` is set) and, when ``booking`` is
    given, a Pending job is created whose reference travels with the cart.
    """
    selection = body.selection
    line_items = [LineItem(variant_id=selection.variant_id, quantity=selection.quantity)]
    if selection.with_installation and settings.shopify_installation_variant_id:
        line_items.append(
            LineItem(
                variant_id=settings.shopify_installation_variant_id,
                quantity=selection.quantity,
            )
        )

    job: InstallationJob | None = None
    if selection.with_installation and body.booking is not None:
        booking = body.booking.model_copy(
            update={
                "reference": new_job_reference(),
                "quantity": selection.quantity,
                "installation_price": round(
                    selection.installation_fee_per_unit * selection.quantity, 2
                ),
            }
        )
        try:
            job = await directory.create_job(booking)
        except UpstreamError as e:
            log_error("Failed to create job at checkout", e)
            raise _upstream_http_error(e, "Job store")

    metadata = CheckoutMetadata(
        with_installation=selection.with_installation,
        tire_brand=selection.tire_brand,
        tire_model=selection.tire_model,
        tire_size=selection.tire_size,
        quantity=selection.quantity,
        job_reference=job.reference if job else None,
    )
    try:
        result = await builder.build_checkout(line_items, metadata)
    except UpstreamNotConfigured as e:
        raise _upstream_http_error(e, "Shopify store")

    if job is not None and result.used_fallback:
        logger.warning(
            f"Job {job.id} created but checkout fell back to a permalink; "
            "the order will not carry its job reference"
        )

    return CheckoutResponse(
        checkout_url=result.url,
        used_fallback=result.used_fallback,
        total=selection.total,
        job_id=job.id if job else None,
        job_reference=job.reference if job else None,
    )


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


@router.post("/webhooks/order-created")
async def order_created(
    request: Request,
    directory: Annotated[InstallerDirectory, Depends(get_installer_directory)],
):
    """Shopify orders/create. Any failure is a 500 so Shopify retries."""
    try:
        order = ShopifyOrder.model_validate(await request.json())
        await handle_order_created(order, directory)
    except Exception as e:
        log_error("Webhook error", e)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return {"success": True}
