from apps.api import main

from apps.api.main import (app, build_login_service, create_app,)

__all__ = ['app', 'build_login_service', 'create_app', 'main']
