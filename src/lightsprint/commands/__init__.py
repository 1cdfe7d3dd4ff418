"""Lightsprint CLI commands"""
