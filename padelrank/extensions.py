"""Flask extensions shared by the operator blueprints."""
from flask_wtf.csrf import CSRFProtect

csrf = CSRFProtect()
