"""Classroom attendance package.

Organized by feature modules (sessions, otp, attendance) with a thin Flask
controller layer over service/store/repository layers.
"""
