"""Booking Application DTOs"""
