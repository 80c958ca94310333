"""
Authentication dependencies for FastAPI.

Identity is resolved upstream; here we only turn the bearer token into an
AuthContext (who is acting, in which role, for which customer).
"""
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt

from app.modules.auth.schemas import AuthContext, Role
from app.modules.auth.utils import decode_access_token

# Security scheme
security = HTTPBearer()


class AuthDependencies:
    """Reusable authentication dependencies."""

    @staticmethod
    def get_auth_context(
        credentials: HTTPAuthorizationCredentials = Depends(security),
    ) -> AuthContext:
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        try:
            payload = decode_access_token(credentials.credentials)
            user_id = payload.get("sub")
            role = payload.get("role")
            customer_id = payload.get("customer_id")
            if user_id is None or role is None:
                raise credentials_exception
            return AuthContext(
                user_id=UUID(user_id),
                role=Role(role),
                customer_id=UUID(customer_id) if customer_id else None,
            )
        except (jwt.PyJWTError, ValueError):
            raise credentials_exception

    @staticmethod
    def require_role(allowed_roles: list[str]):
        """
        Dependency requiring one of the given roles.
        """
        def role_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if auth_context.role.value not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"One of these roles is required: {', '.join(allowed_roles)}"
                )
            if auth_context.role == Role.CUSTOMER and auth_context.customer_id is None:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Customer users must be linked to a customer account"
                )
            return auth_context
        return role_checker

    @staticmethod
    def require_staff():
        return AuthDependencies.require_role(["admin", "employee"])

    @staticmethod
    def require_any_role():
        return AuthDependencies.require_role(["admin", "employee", "customer"])


def ensure_customer_access(auth_context: AuthContext, customer_id: UUID) -> None:
    if not auth_context.can_access_customer(customer_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this customer's records"
        )


get_auth_context = AuthDependencies.get_auth_context
