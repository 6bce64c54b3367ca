"""HOPPER Backend Package"""
