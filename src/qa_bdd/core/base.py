from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError


class ModuleStatus(Enum):
    """Lifecycle of a module instance"""
    NOT_INITIALIZED = "not_initialized"
    READY = "ready"
    RUNNING = "running"
    ERROR = "error"


@dataclass
class ModuleInfo:
    """Static description of a module, for tooling and logs"""
    name: str
    version: str
    description: str
    dependencies: List[str] = field(default_factory=list)
    optional_dependencies: List[str] = field(default_factory=list)
    author: str = "QA BDD Contributors"


@dataclass
class ExecutionResult:
    """
    Uniform envelope returned by ``QAModule.execute``.

    ``data`` holds the module-specific payload (a RunResult for the executor);
    ``metadata`` carries small JSON-friendly extras such as status counts.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    duration: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = self.data.to_dict() if hasattr(self.data, 'to_dict') else self.data
        return {
            'success': self.success,
            'error': self.error,
            'duration': self.duration,
            'timestamp': self.timestamp.isoformat(),
            'metadata': dict(self.metadata),
            'data': data,
        }


class QAModule(ABC):
    """
    Base for the configurable engine components.

    Subclasses normalize and check ``config`` in ``_initialize`` (called from
    the constructor) and move to READY; a failure there leaves them in ERROR.
    """

    def __init__(self, config: Any = None):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
        self._status = ModuleStatus.NOT_INITIALIZED
        self._initialize()

    @abstractmethod
    def _initialize(self) -> None:
        """Normalize configuration and prepare for execute()"""

    @abstractmethod
    def execute(self, input_data: Any) -> ExecutionResult:
        pass

    @abstractmethod
    def validate(self) -> bool:
        """True when the current configuration is usable"""

    @abstractmethod
    def get_info(self) -> ModuleInfo:
        pass

    @property
    def status(self) -> ModuleStatus:
        return self._status

    @status.setter
    def status(self, value: ModuleStatus) -> None:
        if value is not self._status:
            self.logger.debug(f"Status changed from {self._status.value} to {value.value}")
        self._status = value

    def is_ready(self) -> bool:
        return self._status is ModuleStatus.READY

    def ensure_ready(self) -> None:
        """Raise unless the module finished initializing"""
        if self._status is ModuleStatus.ERROR:
            raise ConfigurationError(f"{self.get_info().name} failed to initialize")
        if self._status is ModuleStatus.NOT_INITIALIZED:
            raise ConfigurationError(f"{self.get_info().name} is not initialized")
