"""Booking Domain Value Objects"""
