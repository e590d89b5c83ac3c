"""
shopguard FastAPI 메인 애플리케이션

주문 라이프사이클(생성, 확정, 재고 차감)과 거래 위험도 평가, 트래픽 분석 API 서버입니다.
"""

import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shopguard.config import get_settings
from shopguard.models.base import AsyncSessionLocal, close_db
from shopguard.utils.logging import setup_logging, get_logger
from shopguard.utils.exceptions import AppException, DatabaseException
from shopguard.utils.prometheus_metrics import record_http_request

# API 라우터
from shopguard.api.orders import router as orders_router
from shopguard.api.analytics import router as analytics_router
from shopguard.api.metrics import router as metrics_router

# Admin API 라우터
from shopguard.api.admin.orders import router as admin_orders_router
from shopguard.api.admin.analytics import router as admin_analytics_router

settings = get_settings()

# 로깅 설정
setup_logging(
    log_level=settings.LOG_LEVEL,
    log_format=settings.LOG_FORMAT,
    log_file=settings.LOG_FILE,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 라이프사이클 관리

    스키마는 Alembic 마이그레이션으로 관리하며, 종료 시 DB 연결을 정리합니다.
    """
    logger.info(f"{settings.APP_NAME} 서버 시작 (env={settings.ENV})")
    yield
    logger.info("서버 종료 중...")
    await close_db()
    logger.info("서버 종료 완료")


app = FastAPI(
    title="shopguard - 주문/위험도 평가 API",
    description="""
## 주문 라이프사이클 및 거래 위험도 평가

- **주문 생성**: 회원/비회원 주문, 주문 시점 가격 스냅샷, 위험도 점수 기록
- **주문 확정**: 상태 전이 시 재고 1회 차감 (동시 요청에도 초과 판매 없음)
- **트래픽 분석**: 세션/이벤트 수집, 전환 퍼널, 봇 의심 트래픽 플래그
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# CORS 미들웨어 설정 (프론트엔드 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    """HTTP 요청 수 / 처리 시간 기록 (경로 템플릿 기준)"""
    start_time = time.time()
    response = await call_next(request)

    if settings.PROMETHEUS_ENABLED:
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")
        record_http_request(
            request.method, endpoint, response.status_code, time.time() - start_time
        )

    return response


# 전역 예외 핸들러
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """애플리케이션 정의 예외 처리"""
    logger.warning(
        f"AppException: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """DB 연결/쿼리 실패는 503 으로 응답 (원인은 로그에만 남김)"""
    logger.error(f"Database error: {str(exc)}", exc_info=True)
    return await app_exception_handler(request, DatabaseException())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """요청 형식 오류를 ValidationException 과 같은 형식(400)으로 응답"""
    logger.warning(f"RequestValidationError: path={request.url.path}")
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": "입력 데이터가 유효하지 않습니다.",
            "details": {"errors": jsonable_errors(exc)},
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """모든 예외를 캐치하는 최종 핸들러"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "서버 내부 오류가 발생했습니다. 잠시 후 다시 시도해주세요.",
        },
    )


# 헬스 체크 엔드포인트
@app.get("/", tags=["Health"])
async def root():
    """루트 엔드포인트"""
    return {
        "service": settings.APP_NAME,
        "status": "running",
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """헬스 체크 엔드포인트 (로드 밸런서용)"""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"헬스 체크 DB 연결 실패: {str(e)}")
        database = "disconnected"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
    }


# API 라우터 등록
app.include_router(orders_router)
app.include_router(analytics_router)
if settings.PROMETHEUS_ENABLED:
    app.include_router(metrics_router)

# Admin 라우터 등록
app.include_router(admin_orders_router)
app.include_router(admin_analytics_router)


if __name__ == "__main__":
    # 개발 서버 실행
    uvicorn.run(
        "shopguard.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level="info",
    )
