"""
services/ - Business Layer
===========================
Validation and permission rules on top of the repositories. Operations
return a Response envelope instead of raising for expected outcomes.
"""
