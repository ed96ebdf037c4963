"""
Service layer for the clinic booking agent.
"""
