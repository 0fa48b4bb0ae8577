import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from hospital_backend.core import config
from hospital_backend.database import pool
from hospital_backend.routes import appointment_routes, schedule_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Hospital Appointment Scheduler')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        pool.init()
    except SQLAlchemyError:
        pool.shutdown()
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('shutdown')
def shutdown_database() -> None:
    pool.shutdown()


@app.get('/')
def root():
    return {'status': 'Hospital Appointment Scheduler API Running'}


app.include_router(appointment_routes.router)
app.include_router(schedule_routes.router)
