"""
Shadow-test assembly core for computerized adaptive testing.
"""
