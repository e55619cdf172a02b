"""
Logger utility for the Resource Contention & Deadlock Simulator.

Provides step-by-step logging with verbosity levels.
"""

from typing import List, Optional
from datetime import datetime


class SimulatorLogger:
    """
    Logger for simulation events and decisions.

    Format: "Step X: PY acquires [U0, U1] - GRANTED (reason)"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None):
        """
        Initialize logger.

        Args:
            verbose: Enable verbose output
            log_file: Optional file path for logging
        """
        self.verbose = verbose
        self.log_file = log_file
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Simulation Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_step(self, step: int, message: str, level: str = "info") -> None:
        """Log a simulation step message."""
        self.log(f"Step {step}: {message}", level)

    @staticmethod
    def _units(unit_ids: List[int]) -> str:
        return ", ".join(f"U{u}" for u in unit_ids) if unit_ids else "none"

    def log_acquisition(self, step: int, pid: int, unit_ids: List[int], reason: str) -> None:
        """
        Log units acquired by a process.

        Args:
            step: Current simulation step
            pid: Process ID
            unit_ids: Units acquired this step
            reason: Allocator decision
        """
        self.log_step(step, f"P{pid} acquires [{self._units(unit_ids)}] - {reason}", "debug")

    def log_wait(self, step: int, pid: int, waiting_time: int, reason: str) -> None:
        self.log_step(step, f"P{pid} waits (waiting_time={waiting_time}) - {reason}", "debug")

    def log_release(self, step: int, pid: int, unit_ids: List[int], cause: str) -> None:
        self.log_step(step, f"P{pid} releases [{self._units(unit_ids)}] ({cause})", "debug")

    def log_timeout(self, step: int, pid: int, waiting_time: int, unit_ids: List[int]) -> None:
        """
        Log a process abandoning its attempt after waiting too long.

        Args:
            step: Current simulation step
            pid: Process ID
            waiting_time: Waiting time that exceeded the limit
            unit_ids: Partial holdings released
        """
        message = (
            f"P{pid} - TIMEOUT after {waiting_time} steps "
            f"(released: {self._units(unit_ids)})"
        )
        self.log_step(step, message, "debug")

    def log_completion(self, step: int, pid: int, tasks_finished: int) -> None:
        self.log_step(step, f"P{pid} - COMPLETED task #{tasks_finished}", "debug")

    def log_deadlock(self, step: int, blocked_pids: list) -> None:
        """
        Log deadlock detection.

        Args:
            step: Current simulation step
            blocked_pids: PIDs that are starving without enough free units
        """
        pids_str = ", ".join(f"P{pid}" for pid in blocked_pids)
        message = f"DEADLOCK DETECTED - Starving processes: [{pids_str}]"
        self.log_step(step, message)

    def log_resolution(self, step: int, policy: str, released: list) -> None:
        """
        Log deadlock resolution.

        Args:
            step: Current simulation step
            policy: Locking policy name
            released: List of (pid, released unit ids) tuples
        """
        total = sum(len(units) for _, units in released)
        message = (
            f"RESOLUTION ({policy}) - {len(released)} process(es) "
            f"released {total} unit(s)"
        )
        self.log_step(step, message)

    def log_system_state(self, step: int, state_str: str) -> None:
        """
        Log system state snapshot.

        Args:
            step: Current simulation step
            state_str: Formatted system state
        """
        if self.verbose:
            self.log_step(step, f"System State:\n{state_str}")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
