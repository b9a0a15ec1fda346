"""Reservation calendar watcher with Telegram notifications."""

__version__ = "0.1.0"
