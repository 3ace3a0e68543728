import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from reporting_backend.auth.sessions import SessionRegistry
from reporting_backend.core import config
from reporting_backend.database import Base, engine, seed_default_faculties
from reporting_backend.models import course, course_class, faculty, report, user  # noqa: F401
from reporting_backend.routes import auth_routes, course_routes, program_routes, rating_routes, report_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)

logger = logging.getLogger(__name__)

app = FastAPI(title='Lecture Reporting API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.state.session_registry = SessionRegistry()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return 'Invalid request'
    first = errors[0]
    message = str(first.get('msg', 'Invalid request')).removeprefix('Value error, ')
    location = [str(part) for part in first.get('loc', ()) if part != 'body']
    if first.get('type') == 'missing' and location:
        return f'{location[-1]} is required.'
    return message


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'detail': _validation_message(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'detail': 'Internal server error'},
    )


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        if config.SEED_DEFAULT_FACULTIES:
            seed_default_faculties()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/api/health')
def health():
    return {'status': 'OK', 'message': 'Lecture Reporting API is running'}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(course_routes.router, prefix='/api')
app.include_router(program_routes.router, prefix='/api')
app.include_router(report_routes.router, prefix='/api')
app.include_router(rating_routes.router, prefix='/api')
