"""
Core domain types for the clinic booking agent.
"""
