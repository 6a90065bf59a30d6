"""
FileKeep Server - Database Manager

This module manages the identity database: connection, initialization,
default roles and capabilities, users and settings.
"""

import secrets
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import bcrypt

from models.database import Base, Role, Permission, RolePermission, User, Setting
from models.infrastructure import UserIdentity
from permissions import CAPABILITIES


# Descriptions of the file manager capabilities stored in the permissions table
CAPABILITY_DESCRIPTIONS = {
    "read": "Can list directories, view entries and download through open/info",
    "write": "Can upload, rename, copy, move and create folders",
    "delete": "Can move entries to trash and delete them permanently",
    "upload": "Can upload files",
    "download": "Can download files",
    "rename": "Can rename entries",
    "copy": "Can copy entries",
    "move": "Can move entries",
    "mkdir": "Can create folders",
    "search": "Can search by name",
    "quota": "Can see quota figures",
    "info": "Can view detailed entry information"
}

DEFAULT_ROLES = {
    "Admin": {
        "description": "Full access to every file manager capability",
        "permissions": list(CAPABILITIES),
        "is_system": True
    },
    "Standard User": {
        "description": "Full access to the user's file area",
        "permissions": list(CAPABILITIES),
        "is_system": True
    },
    "Read-Only": {
        "description": "Can only browse, search and download files",
        "permissions": ["read", "download", "search", "info", "quota"],
        "is_system": True
    }
}

DEFAULT_SETTINGS = {
    "jwt_expiration_hours": "24"
}


class DatabaseManager:
    """
    Manages database connection, initialization, and operations
    """

    def __init__(self, db_path: str = "database/filekeep.db"):
        """
        Initialize database manager

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

        # Ensure database directory exists
        db_dir = Path(db_path).parent
        if db_dir and str(db_dir) != '.':
            db_dir.mkdir(parents=True, exist_ok=True)

        # Sessions are opened from FastAPI worker threads
        self.engine = create_engine(
            f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False}
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def InitializeDatabase(self) -> Optional[str]:
        """
        Initialize the database with all tables and default data
        Creates tables if they don't exist, populates default settings,
        and creates a default admin user on first run.

        Returns:
            str: Generated admin password if admin user was created, None otherwise
        """
        Base.metadata.create_all(bind=self.engine)

        session = self.SessionLocal()
        admin_password = None

        try:
            is_first_run = session.query(User).count() == 0

            # Populate default roles and permissions (always, even if not first run)
            self.PopulateDefaultRolesAndPermissions(session)

            if is_first_run:
                admin_role = session.query(Role).filter(Role.role_name == "Admin").first()

                admin_password = self.GenerateRandomPassword()
                admin_user = User(
                    username="admin",
                    password_hash=self.HashPassword(admin_password),
                    role_id=admin_role.role_id if admin_role else None,
                    created_at=datetime.now(timezone.utc),
                    is_active=True
                )
                session.add(admin_user)
                print(f"Created default admin user")
                print(f"Username: admin")
                print(f"Password: {admin_password}")
                print(f"IMPORTANT: Change this password after first login!")

            self.PopulateDefaultSettings(session)

            session.commit()

        except Exception as e:
            session.rollback()
            raise e
        finally:
            session.close()

        return admin_password

    def PopulateDefaultRolesAndPermissions(self, session):
        """
        Populate default roles and capabilities
        Only adds roles and permissions that don't already exist

        Args:
            session: SQLAlchemy session
        """
        permission_objs = {}
        for perm_name, description in CAPABILITY_DESCRIPTIONS.items():
            existing = session.query(Permission).filter(Permission.permission_name == perm_name).first()
            if not existing:
                perm = Permission(permission_name=perm_name, description=description)
                session.add(perm)
                session.flush()  # Flush to get the permission_id
                permission_objs[perm_name] = perm
            else:
                permission_objs[perm_name] = existing

        for role_name, role_config in DEFAULT_ROLES.items():
            existing_role = session.query(Role).filter(Role.role_name == role_name).first()

            if not existing_role:
                role = Role(
                    role_name=role_name,
                    description=role_config["description"],
                    is_system_role=role_config["is_system"]
                )
                session.add(role)
                session.flush()  # Flush to get the role_id

                for perm_name in role_config["permissions"]:
                    session.add(RolePermission(
                        role_id=role.role_id,
                        permission_id=permission_objs[perm_name].permission_id
                    ))
            else:
                # Role exists - add capabilities introduced since it was created
                existing_perm_names = [p.permission_name for p in existing_role.permissions]
                for perm_name in role_config["permissions"]:
                    if perm_name not in existing_perm_names:
                        session.add(RolePermission(
                            role_id=existing_role.role_id,
                            permission_id=permission_objs[perm_name].permission_id
                        ))

    def PopulateDefaultSettings(self, session):
        """
        Populate default settings
        Only adds settings that don't already exist

        Args:
            session: SQLAlchemy session
        """
        for key, value in DEFAULT_SETTINGS.items():
            existing = session.query(Setting).filter(Setting.key == key).first()
            if not existing:
                session.add(Setting(key=key, value=value))

    def GetSettingValue(self, session, key: str, default: str = None) -> Optional[str]:
        setting = session.query(Setting).filter(Setting.key == key).first()
        return setting.value if setting else default

    @staticmethod
    def GenerateRandomPassword(length: int = 12) -> str:
        """
        Generate a secure random password

        Args:
            length: Password length (default 12)

        Returns:
            str: Generated password
        """
        alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
        return ''.join(secrets.choice(alphabet) for _ in range(length))

    @staticmethod
    def HashPassword(password: str) -> str:
        """
        Hash a password using bcrypt
        Truncates to 72 bytes to comply with bcrypt's maximum password length

        Args:
            password: Plain text password

        Returns:
            str: Hashed password (as string)
        """
        password_bytes = password.encode('utf-8')[:72]
        hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt())
        return hashed.decode('utf-8')

    @staticmethod
    def VerifyPassword(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against a hash

        Args:
            plain_password: Plain text password to verify
            hashed_password: Stored password hash (as string)

        Returns:
            bool: True if password matches, False otherwise
        """
        password_bytes = plain_password.encode('utf-8')[:72]
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))

    def GetSession(self):
        """
        Get a new database session

        Returns:
            Session: SQLAlchemy session
        """
        return self.SessionLocal()

    # ==================== Users ====================

    def CreateUser(self, username: str, password: str, role_name: str = "Standard User",
                   quota_bytes: int = 0) -> User:
        """
        Create a user with the given role and storage ceiling

        Args:
            username: Unique username
            password: Plain text password
            role_name: Name of an existing role
            quota_bytes: Storage ceiling in bytes (0 for none)

        Returns:
            User: The created user

        Raises:
            ValueError: If the username is taken or the role does not exist
        """
        session = self.SessionLocal()

        try:
            if session.query(User).filter(User.username == username).first():
                raise ValueError(f"User '{username}' already exists")

            role = session.query(Role).filter(Role.role_name == role_name).first()
            if not role:
                raise ValueError(f"Role '{role_name}' does not exist")

            user = User(
                username=username,
                password_hash=self.HashPassword(password),
                role_id=role.role_id,
                quota_bytes=quota_bytes,
                created_at=datetime.now(timezone.utc),
                is_active=True
            )
            session.add(user)
            session.commit()
            return user

        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def GetRolePermissions(self, session, role_id: int = None, role_name: str = None) -> List[str]:
        """
        Get all permission names for a role

        Args:
            session: SQLAlchemy session
            role_id: Role ID (optional)
            role_name: Role name (optional)

        Returns:
            list: List of permission names
        """
        if role_id:
            role = session.query(Role).filter(Role.role_id == role_id).first()
        elif role_name:
            role = session.query(Role).filter(Role.role_name == role_name).first()
        else:
            return []

        if role:
            return [perm.permission_name for perm in role.permissions]
        return []

    def GetUserIdentity(self, session, user: User) -> UserIdentity:
        """
        Resolve a user row into the identity consumed by the command engine

        Args:
            session: SQLAlchemy session
            user: User row

        Returns:
            UserIdentity: Id, username, capabilities and quota ceiling
        """
        return UserIdentity(
            id=user.user_id,
            username=user.username,
            permissions=self.GetRolePermissions(session, role_id=user.role_id),
            quota=user.quota_bytes or 0
        )
