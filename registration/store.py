"""Storage interface the business rules are written against.

One adapter per backend: ``registration.dynamo`` (document store) and
``registration.sql`` (relational). Adapters raise ``BackendError`` for
failed datastore calls and ``ConflictError`` when a uniqueness condition
enforced by the datastore itself fails.
"""

from abc import ABC, abstractmethod


class RegistrationStore(ABC):
    # Teams

    @abstractmethod
    def get_team(self, team_id):
        """Return the Team or None."""

    @abstractmethod
    def get_team_by_owner(self, user_id):
        """Return the Team owned by ``user_id`` or None."""

    @abstractmethod
    def list_teams(self):
        """Return every Team, in no particular order."""

    @abstractmethod
    def count_teams(self):
        ...

    @abstractmethod
    def insert_team(self, team):
        """Persist a new Team; ConflictError if its owner already has one."""

    @abstractmethod
    def update_team(self, team_id, changes):
        """Apply attribute changes and return the updated Team."""

    @abstractmethod
    def set_team_status(self, team_id, status, expected, updated_at):
        """Write ``status`` only if the stored status equals ``expected``.

        Returns True when the write landed.
        """

    @abstractmethod
    def delete_team(self, team_id):
        ...

    # Pilots

    @abstractmethod
    def list_pilots(self, team_id):
        ...

    @abstractmethod
    def get_pilot(self, team_id, pilot_id):
        ...

    @abstractmethod
    def find_pilot_by_dni(self, team_id, dni, exclude_id=None):
        """Return a pilot of the team with this national ID, other than ``exclude_id``."""

    @abstractmethod
    def count_pilots(self, team_id):
        ...

    @abstractmethod
    def insert_pilot(self, pilot):
        ...

    @abstractmethod
    def update_pilot(self, team_id, pilot_id, changes):
        ...

    @abstractmethod
    def delete_pilot(self, team_id, pilot_id):
        ...

    # Staff

    @abstractmethod
    def list_staff(self, team_id):
        ...

    @abstractmethod
    def get_staff(self, team_id, staff_id):
        ...

    @abstractmethod
    def find_staff_by_dni(self, team_id, dni, exclude_id=None):
        ...

    @abstractmethod
    def count_staff(self, team_id):
        ...

    @abstractmethod
    def insert_staff(self, member):
        ...

    @abstractmethod
    def update_staff(self, team_id, staff_id, changes):
        ...

    @abstractmethod
    def delete_staff(self, team_id, staff_id):
        ...

    # Settings

    @abstractmethod
    def get_settings(self):
        """Return the stored RegistrationSettings or None."""

    @abstractmethod
    def put_settings(self, settings):
        ...
