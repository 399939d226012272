"""
Service-wide constants
"""
SERVICE_NAME = "opscore-attendance"
SYSTEM_CREDIT = "OpsCore Platform Team"
