"""Data sources for sales, staff and commission profiles"""
import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .data_loader import DataLoader
from .exceptions import ValidationError
from .models import CommissionProfile, Sale, StaffMember

logger = logging.getLogger(__name__)

# Called with the name of the collection that changed: 'sales', 'staff' or 'profiles'
Listener = Callable[[str], None]


class DataSource(ABC):
    """
    Read access to the records the calculators work on.

    Reports receive a DataSource instead of reaching for shared module
    state. Subscribers are told which collection changed so they can
    recompute.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    @abstractmethod
    def list_sales(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Sale]:
        ...

    @abstractmethod
    def list_staff(self) -> List[StaffMember]:
        ...

    @abstractmethod
    def list_profiles(self) -> List[CommissionProfile]:
        ...

    def get_sale(self, sale_id: str) -> Optional[Sale]:
        return next((sale for sale in self.list_sales() if sale.id == sale_id), None)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        logger.debug("%s changed; notifying %d listener(s)", collection, len(self._listeners))
        for listener in list(self._listeners):
            listener(collection)


class InMemoryDataSource(DataSource):
    """DataSource over in-memory collections, for callers that already fetched the records."""

    def __init__(self, sales: Iterable[Sale] = (), staff: Iterable[StaffMember] = (),
                 profiles: Iterable[CommissionProfile] = ()):
        super().__init__()
        self._sales = list(sales)
        self._staff = list(staff)
        self._profiles = list(profiles)

    def list_sales(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Sale]:
        return [sale for sale in self._sales if sale.in_period(start, end)]

    def list_staff(self) -> List[StaffMember]:
        return list(self._staff)

    def list_profiles(self) -> List[CommissionProfile]:
        return list(self._profiles)

    def add_sales(self, sales: Iterable[Sale]) -> None:
        self._sales.extend(sales)
        self._notify('sales')

    def set_staff(self, staff: Iterable[StaffMember]) -> None:
        self._staff = list(staff)
        self._notify('staff')

    def set_profiles(self, profiles: Iterable[CommissionProfile]) -> None:
        self._profiles = list(profiles)
        self._notify('profiles')


class FileDataSource(DataSource):
    """
    DataSource backed by exported files.

    Sales may be JSON, CSV or Excel; staff and profiles are JSON. Files are
    read on first use and cached until reload().
    """

    SALES_READERS = {
        '.json': DataLoader.load_sales_json,
        '.csv': DataLoader.load_sales_from_csv,
        '.xlsx': DataLoader.load_sales_from_excel,
        '.xls': DataLoader.load_sales_from_excel,
    }

    def __init__(self, sales_path: str, staff_path: Optional[str] = None,
                 profiles_path: Optional[str] = None):
        super().__init__()
        self.sales_path = Path(sales_path)
        self.staff_path = Path(staff_path) if staff_path else None
        self.profiles_path = Path(profiles_path) if profiles_path else None
        if self.sales_path.suffix.lower() not in self.SALES_READERS:
            raise ValidationError(f"Unsupported sales file type: {self.sales_path.suffix}")
        self._sales: Optional[List[Sale]] = None
        self._staff: Optional[List[StaffMember]] = None
        self._profiles: Optional[List[CommissionProfile]] = None

    def list_sales(self, start: Optional[date] = None, end: Optional[date] = None) -> List[Sale]:
        if self._sales is None:
            reader = self.SALES_READERS[self.sales_path.suffix.lower()]
            self._sales = reader(str(self.sales_path), self.list_staff())
        return [sale for sale in self._sales if sale.in_period(start, end)]

    def list_staff(self) -> List[StaffMember]:
        if self._staff is None:
            self._staff = DataLoader.load_staff_json(str(self.staff_path)) if self.staff_path else []
        return list(self._staff)

    def list_profiles(self) -> List[CommissionProfile]:
        if self._profiles is None:
            self._profiles = (
                DataLoader.load_profiles_json(str(self.profiles_path)) if self.profiles_path else []
            )
        return list(self._profiles)

    def reload(self) -> None:
        """Drop cached records; they are re-read on next access."""
        self._sales = self._staff = self._profiles = None
        for collection in ('sales', 'staff', 'profiles'):
            self._notify(collection)
