"""SAINTRIX - Services"""
