import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "class_attendance"),
}

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

OTP_DIGITS = int(os.getenv("OTP_DIGITS", "6"))
OTP_VALIDITY_SECONDS = int(os.getenv("OTP_VALIDITY_SECONDS", "20"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
