"""
auth — User authentication module.

Provides:
  • Access / refresh token issuing & verification (separate secrets)
  • Password hashing (bcrypt)
  • Signup / login / refresh / logout / current-user API routes
  • ``get_current_user_id`` FastAPI dependency
"""
