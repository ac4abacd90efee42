from apps import api

from apps.api import (app, build_login_service, create_app, main,)

__all__ = ['api', 'app', 'build_login_service', 'create_app', 'main']
