from .tenancy import Organization, OrganizationMember, OrganizationSetting
from .auth import User, SessionToken, UserSetting
from .catalog import Product
from .sales import Sale, EmailSignup, CloseOut

__all__ = [
    'Organization', 'OrganizationMember', 'OrganizationSetting',
    'User', 'SessionToken', 'UserSetting',
    'Product',
    'Sale', 'EmailSignup', 'CloseOut',
]
