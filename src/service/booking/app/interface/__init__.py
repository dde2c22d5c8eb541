"""Booking Application Interfaces"""
