"""Talaty eKYC - Services"""
