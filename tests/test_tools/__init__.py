"""
Test Tools Package
Tests for the tools module (schedule engine, intake matching, analytics)
"""
