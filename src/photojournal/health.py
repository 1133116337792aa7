"""
Health check functionality for photojournal.

The same checks back the ``GET /health`` endpoint and the Streamlit health page.
"""

import os
import platform
import time
from typing import Any

import streamlit as st

from photojournal import __version__
from photojournal.config import get_environment, get_storage_backend
from photojournal.logging_config import get_logger
from photojournal.services.storage import StorageGateway, get_storage_gateway

logger = get_logger(__name__)

_START_TIME = time.time()


def check_storage_health(gateway: StorageGateway | None = None) -> dict[str, Any]:
    """Check that the blob store answers."""
    try:
        gateway = gateway or get_storage_gateway()
        if gateway.check_health():
            return {
                "status": "healthy",
                "message": "Storage connection successful",
                "backend": get_storage_backend(),
                "timestamp": time.time(),
            }
        return {"status": "unhealthy", "message": "Storage bucket is not reachable", "timestamp": time.time()}
    except Exception as e:
        logger.error("storage_health_check_failed", error=str(e))
        return {"status": "unhealthy", "message": f"Storage connection failed: {str(e)}", "timestamp": time.time()}


def check_environment_health() -> dict[str, Any]:
    """Check environment configuration."""
    required_env_vars = ["ENVIRONMENT"]

    # The in-memory backend needs no cloud settings
    if get_storage_backend() == "gcs":
        required_env_vars.extend(["GOOGLE_CLOUD_PROJECT", "GCS_PHOTOS_BUCKET"])

    missing_vars = []
    present_vars = []
    for var in required_env_vars:
        if not os.getenv(var):
            missing_vars.append(var)
        else:
            present_vars.append(var)

    if missing_vars:
        return {
            "status": "unhealthy",
            "message": f"Missing environment variables: {', '.join(missing_vars)}",
            "timestamp": time.time(),
            "missing_vars": missing_vars,
        }

    return {
        "status": "healthy",
        "message": "Environment configuration is valid",
        "timestamp": time.time(),
        "present_vars": present_vars,
    }


def get_application_info() -> dict[str, Any]:
    return {
        "name": "photojournal",
        "version": __version__,
        "environment": get_environment(),
        "uptime": time.time() - _START_TIME,
        "python_version": platform.python_version(),
        "platform": os.name,
    }


def get_health_status(gateway: StorageGateway | None = None) -> dict[str, Any]:
    """Run every check and compile the overall status."""
    logger.info("health_check_started")
    start_time = time.time()

    checks = {
        "storage": check_storage_health(gateway),
        "environment": check_environment_health(),
    }
    unhealthy_services = [service for service, result in checks.items() if result["status"] != "healthy"]
    overall_status = "unhealthy" if unhealthy_services else "healthy"

    health_response: dict[str, Any] = {
        "status": overall_status,
        "timestamp": time.time(),
        "duration_ms": round((time.time() - start_time) * 1000, 2),
        "application": get_application_info(),
        "checks": checks,
    }
    if unhealthy_services:
        health_response["unhealthy_services"] = unhealthy_services

    logger.info(
        "health_check_completed",
        status=overall_status,
        duration_ms=health_response["duration_ms"],
        unhealthy_services=unhealthy_services,
    )
    return health_response


def render_health_page() -> None:
    """Render health check page for Streamlit."""
    st.set_page_config(page_title="Health Check - photojournal", page_icon="🏥", layout="wide")

    st.title("🏥 Health Check")
    st.markdown("---")

    with st.spinner("Performing health check..."):
        health_data = get_health_status()

    if health_data["status"] == "healthy":
        st.success(f"✅ Application is healthy (checked in {health_data['duration_ms']}ms)")
    else:
        st.error(f"❌ Application is unhealthy (checked in {health_data['duration_ms']}ms)")
        st.warning(f"Unhealthy services: {', '.join(health_data['unhealthy_services'])}")

    st.subheader("📱 Application Information")
    app_info = health_data["application"]
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Version", app_info["version"])
    with col2:
        st.metric("Environment", app_info["environment"])
    with col3:
        st.metric("Uptime", f"{app_info['uptime']:.1f}s")

    st.subheader("🔍 Service Health Checks")
    for service, check_result in health_data["checks"].items():
        with st.expander(f"{service.title()} Service", expanded=check_result["status"] != "healthy"):
            if check_result["status"] == "healthy":
                st.success(f"✅ {check_result['message']}")
            else:
                st.error(f"❌ {check_result['message']}")
            st.json(check_result)
