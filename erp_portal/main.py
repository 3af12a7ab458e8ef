import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from erp_portal.config import settings
from erp_portal.routers import auth, inventory, procurement, purchasing, sales
from erp_portal.security.headers import install_security_headers

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='ERP Procurement Portal')

install_security_headers(app)


def error_response(status_code: int, error: str, details=None) -> JSONResponse:
    body = {'error': error}
    if details is not None:
        body['details'] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else 'Request failed'
    response = error_response(exc.status_code, detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(400, 'Validation failed', details=exc.errors())


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning('Integrity error on %s %s: %s', request.method, request.url.path, exc.orig)
    return error_response(
        409,
        'A record with the same unique values already exists',
        details=str(exc.orig) if settings.debug else None,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return error_response(500, 'Internal server error', details=str(exc) if settings.debug else None)


app.include_router(auth.router)
app.include_router(procurement.router)
app.include_router(purchasing.router)
app.include_router(sales.router)
app.include_router(inventory.router)


@app.get('/health')
def health() -> dict:
    return {'status': 'ok'}


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'
