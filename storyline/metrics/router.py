import logging
import time
from typing import Callable

from fastapi import APIRouter, Request, Response
from fastapi.routing import APIRoute

from ..constants.metrics import Constants
from .statsd_client import statsd

logger = logging.getLogger("api")


class MetricsAPIRoute(APIRoute):
    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()

        async def metrics_route_handler(request: Request) -> Response:
            # Templated route path, e.g. /projects/{project_id}/outline/{outline_id}/generate
            route_path = request.scope["route"].path
            method = request.method

            # Get client IP - considering forwarded headers
            client_ip = request.headers.get(
                "X-Forwarded-For", request.client.host if request.client else "unknown"
            )

            start_time = time.time()

            logger.info(
                f"Request | {method} | {request.url.path} | {client_ip} | {request.query_params if request.query_params else 'No query params'}"
            )

            try:
                response = await original_route_handler(request)

                process_time_ms = (time.time() - start_time) * 1000
                status_code = response.status_code

                logger.info(
                    f"Response | {method} | {request.url.path} | {client_ip} | {status_code} | {process_time_ms:.4f}ms"
                )

                self._log_metric(method, route_path, status_code, process_time_ms)

                return response
            except Exception as e:
                process_time_ms = (time.time() - start_time) * 1000
                status_code = getattr(e, "status_code", 500)

                if status_code >= 500:
                    logger.error(
                        f"Uncaught exception in request | {method} | {request.url.path} | {client_ip} | {str(e)} | {process_time_ms:.4f}ms",
                        exc_info=True,
                    )
                else:
                    logger.info(
                        f"Response | {method} | {request.url.path} | {client_ip} | {status_code} | {process_time_ms:.4f}ms"
                    )

                self._log_metric(method, route_path, status_code, process_time_ms)

                # Re-raise the exception
                raise

        return metrics_route_handler

    def _log_metric(self, method, path, status_code, process_time_ms):
        tags = {
            Constants.Tag.METHOD: method,
            Constants.Tag.PATH: path,
            Constants.Tag.CODE: status_code,
        }
        statsd.timing(Constants.Metric.API_LATENCY, process_time_ms, tags)
        statsd.increment(Constants.Metric.API_COUNT, Constants.Metric.INCREMENT_COUNT, tags)


class MetricsRouter(APIRouter):
    def __init__(self, *args, **kwargs):
        kwargs["route_class"] = MetricsAPIRoute
        super().__init__(*args, **kwargs)
