import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from photo_file_server.config.config import config
from photo_file_server.error_code import ErrorCode
from photo_file_server.photo.api import init as init_photo, router as photo_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=config.log_level,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    init_photo()
    logger.info('storing photos under %s', config.storage_root.resolve())
    yield


app = FastAPI(lifespan=lifespan)
app.include_router(photo_router, tags=['photo'])

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info('%s %s rejected: %s', request.method, request.url.path, exc.errors())
    fields = sorted({str(error['loc'][-1]) for error in exc.errors() if error.get('loc')})
    desc = ErrorCode.INVALID_REQUEST.desc + (', missing or invalid: ' + ', '.join(fields) if fields else '')
    return JSONResponse(status_code=ErrorCode.INVALID_REQUEST.code, content={"message": desc})


def run():
    uvicorn.run(app='photo_file_server.main:app', host=config.host, port=config.port)


if __name__ == "__main__":
    run()
