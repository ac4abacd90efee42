from login import config
from login import errors
from login import facebook_login
from login import login_routes
from login import provider_client
from login import security_middleware
from login import security_token

from login.config import (LoginSettings, ProviderCredentials,
                          expand_redirect_uri, normalize_context_root,)
from login.errors import (CallbackResult, CallbackStatus, ErrorKind,
                          LoginError, SecurityTokenError,)
from login.facebook_login import (FacebookLoginService,)
from login.provider_client import (JsonErrorBody, ProviderClient,
                                   QueryStringBody, build_url, parse_json,
                                   parse_token_response,)
from login.security_token import (JWTSecurityTokenMinter,
                                  SecurityTokenMinter,)

__all__ = ['CallbackResult', 'CallbackStatus', 'ErrorKind',
           'FacebookLoginService', 'JWTSecurityTokenMinter', 'JsonErrorBody',
           'LoginError', 'LoginSettings', 'ProviderClient',
           'ProviderCredentials', 'QueryStringBody', 'SecurityTokenError',
           'SecurityTokenMinter', 'build_url', 'config',
           'expand_redirect_uri', 'errors', 'facebook_login', 'login_routes',
           'normalize_context_root',
           'parse_json', 'parse_token_response', 'provider_client',
           'security_middleware', 'security_token']
