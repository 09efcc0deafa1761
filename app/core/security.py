from datetime import timedelta
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import current_time


class TokenData(BaseModel):
    user_id: int
    email: str
    admin_organizations: List[int] = []

    def is_admin_of(self, organization_id: int) -> bool:
        if self is SYSTEM_TOKEN:
            return True
        return organization_id in self.admin_organizations


# Constants
ALGORITHM = 'HS256'

# Used by internal processes; user_id=0 is never a real member
SYSTEM_TOKEN = TokenData(user_id=0, email='')

oauth2_scheme = OAuth2PasswordBearer(tokenUrl='auth/token')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        to_encode.update({'exp': current_time() + expires_delta})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenData:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail='Could not validate credentials',
        headers={'WWW-Authenticate': 'Bearer'},
    )

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.error('Token has expired')
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Token has expired',
            headers={'WWW-Authenticate': 'Bearer'},
        )
    except JWTError as e:
        logger.error('Error decoding token: %s', str(e))
        raise credentials_exception

    user_id = payload.get('user_id')
    email = payload.get('email')
    if user_id is None or email is None:
        logger.error('Invalid token payload: %s', payload)
        raise credentials_exception

    admin_organizations = payload.get('admin_organizations') or []
    return TokenData(
        user_id=user_id,
        email=email,
        admin_organizations=admin_organizations,
    )
