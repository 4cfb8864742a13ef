"""
commands.py

텍스트 명령 한 줄을 MemorySystem 호출로 바꾸고, 결과를 콘솔 문구로 출력하는 command layer.

- 코어(models/cache)는 출력하지 않는다. 모든 print는 여기서만 한다.
- 인자 파싱 오류(숫자가 아님, 0 크기 풀 등)는 여기서 걸러 사용법/에러 문구를 출력한다.
- 명령 별칭(init/initialize, alloc/malloc ...)은 _COMMANDS 표 하나로 관리한다.

run_sim.py --interactive / --script 가 이 모듈을 쓴다.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from cache import CacheLevel
from errors import AllocError, CacheError, ConfigError
from placement import parse_strategy
from simulator import MemorySystem


PROMPT = "memsim> "

WELCOME = (
    "===========================================\n"
    "  Physical Memory Management Simulator\n"
    "===========================================\n"
    "Type 'help' to see available commands\n"
    "Type 'exit' to quit the simulator\n"
)

HELP = (
    "\n--- Available Commands ---\n"
    "init <size>           - Initialize memory pool with specified size\n"
    "strategy <algorithm>  - Set allocation strategy (first_fit/best_fit/worst_fit)\n"
    "alloc <size>          - Allocate memory block of specified size\n"
    "free <pid>            - Deallocate memory block with process ID\n"
    "display               - Show current memory layout\n"
    "stats                 - Display memory statistics and analysis\n"
    "reset                 - Reset the entire simulator\n"
    "cache <l1> <l1blk> <l2> <l2blk> - Rebuild the L1/L2 cache hierarchy\n"
    "access <addr>         - Simulate a memory access (decimal or 0x hex)\n"
    "cache_stats           - Display cache performance statistics\n"
    "flush                 - Invalidate all cache blocks\n"
    "cache_reset           - Reset cache statistics\n"
    "help                  - Show this help message\n"
    "exit                  - Quit the simulator\n"
    "-------------------------"
)


def parse_address(token: str) -> int:
    """decimal 또는 0x hex 주소. 음수/형식 오류는 ValueError."""
    t = token.strip().lower()
    value = int(t, 16) if t.startswith("0x") else int(t, 10)
    if value < 0:
        raise ValueError(token)
    return value


def _parse_size(token: str) -> int:
    value = int(token, 10)
    if value < 0:
        raise ValueError(token)
    return value


def format_segment(seg) -> str:
    head = f"[0x{seg.base_address:x} - 0x{seg.end_address:x}] "
    if seg.is_free:
        return head + f"FREE (size={seg.size})"
    return head + f"ALLOCATED (PID={seg.pid}, size={seg.size})"


def _print_level_created(level: CacheLevel) -> None:
    print(
        f"Cache initialized: {level.capacity_bytes} bytes, "
        f"{level.block_size_bytes} bytes per block, "
        f"{level.number_of_blocks} total blocks"
    )


def _print_level_metrics(name: str, level: CacheLevel) -> None:
    m = level.metrics
    print(f"{name} Performance:")
    print(f"  Total accesses: {m.total}")
    print(f"  Cache hits: {m.hits}")
    print(f"  Cache misses: {m.misses}")
    print(f"  Hit ratio: {m.hit_ratio:.2f}%")
    print(f"  Miss ratio: {m.miss_ratio:.2f}%")


class CommandProcessor:
    """
    한 세션(MemorySystem)에 묶인 명령 처리기.

    process_single_command(line) -> 계속 실행 여부(bool)
    run_interactive_session(read_line) -> EOF 또는 exit까지 반복
    """

    def __init__(self, system: MemorySystem):
        self.system = system
        self.is_running = False

        self._commands: Dict[str, Callable[[List[str]], None]] = {}
        for names, handler in (
            (("init", "initialize"), self._init),
            (("strategy", "set"), self._strategy),
            (("alloc", "malloc"), self._alloc),
            (("free", "dealloc"), self._free),
            (("display", "dump", "show"), self._display),
            (("stats", "statistics", "analyze"), self._stats),
            (("reset", "clear"), self._reset),
            (("cache", "cache_init"), self._cache),
            (("access", "read"), self._access),
            (("cache_stats", "cstats"), self._cache_stats),
            (("flush",), self._flush),
            (("cache_reset",), self._cache_reset),
            (("help", "?"), self._help),
            (("exit", "quit", "bye"), self._exit),
        ):
            for n in names:
                self._commands[n] = handler

    # --------------------------------------------------------
    # Entry points
    # --------------------------------------------------------

    def process_single_command(self, line: str) -> bool:
        tokens = line.split()
        if not tokens:
            return True

        # exit 전까지는 실행 중으로 본다(스크립트 모드에서 run_interactive_session 없이 호출될 때)
        self.is_running = True

        handler = self._commands.get(tokens[0])
        if handler is None:
            print(f"Unknown command: '{tokens[0]}'. Type 'help' for available commands.")
            return self.is_running

        handler(tokens)
        return self.is_running

    def run_interactive_session(self, read_line: Optional[Callable[[str], Optional[str]]] = None) -> None:
        """
        read_line(prompt) -> str | None. None 또는 EOFError면 종료.
        기본값은 input().
        """
        read_line = read_line or input
        print(WELCOME)
        self.is_running = True

        while self.is_running:
            try:
                line = read_line(PROMPT)
            except EOFError:
                break
            if line is None:
                break
            if line.strip():
                self.process_single_command(line)

    # --------------------------------------------------------
    # Allocator commands
    # --------------------------------------------------------

    def _init(self, tokens: List[str]) -> None:
        if len(tokens) < 2:
            print("Usage: init <memory_size>")
            print("Example: init 1024")
            return
        try:
            size = _parse_size(tokens[1])
        except ValueError:
            print("Error: Invalid memory size format")
            return
        if size == 0:
            print("Error: Memory size must be greater than 0")
            return

        self.system.init_pool(size)
        print(f"Memory pool initialized: {size} bytes")

    def _strategy(self, tokens: List[str]) -> None:
        if len(tokens) < 2:
            print("Usage: strategy <algorithm>")
            print("Available algorithms: first_fit, best_fit, worst_fit")
            return
        try:
            strategy = parse_strategy(tokens[1])
        except ValueError:
            print(f"Error: Unknown allocation algorithm '{tokens[1]}'")
            print("Available: first_fit, best_fit, worst_fit")
            return

        self.system.set_strategy(strategy)
        print(f"Allocation strategy set to: {strategy.label}")

    def _alloc(self, tokens: List[str]) -> None:
        if len(tokens) < 2:
            print("Usage: alloc <size>")
            print("Example: alloc 256")
            return
        try:
            size = _parse_size(tokens[1])
        except ValueError:
            print("Error: Invalid allocation size format")
            return

        res = self.system.allocate(size)
        if res is AllocError.ZERO_SIZE:
            print(f"Error: {res.message}")
        elif res is AllocError.NO_FIT:
            print(f"Memory allocation failed: {res.message}")
        else:
            print(f"Memory allocated: PID={res.pid} at address=0x{res.address:x} (size={size})")

    def _free(self, tokens: List[str]) -> None:
        if len(tokens) < 2:
            print("Usage: free <process_id>")
            print("Example: free 3")
            return
        try:
            pid = int(tokens[1], 10)
        except ValueError:
            print("Error: Invalid process ID format")
            return

        err = self.system.deallocate(pid)
        if err is None:
            print(f"Memory deallocated for PID={pid}")
        else:
            print(f"Error: Process ID {pid} not found")

    def _display(self, tokens: List[str]) -> None:
        print("\n--- Current Memory Layout ---")
        for seg in self.system.layout():
            print(format_segment(seg))
        print("-----------------------------")

    def _stats(self, tokens: List[str]) -> None:
        rep = self.system.analysis()
        stats = self.system.pool.stats

        print("\n--- Memory Analysis Report ---")
        print(f"Total memory capacity: {rep.capacity} bytes")
        print(f"Allocated memory: {rep.total_allocated} bytes")
        print(f"Free memory: {rep.total_free} bytes")
        print(f"Largest free block: {rep.largest_free_block} bytes")
        print(f"Memory utilization: {rep.utilization:.2f}%")
        print(f"External fragmentation: {rep.external_fragmentation:.2f}%")
        print("Internal fragmentation: 0.00% (exact allocation)")
        print("-----------------------------")

        print("\n=== Memory Performance Statistics ===")
        print(f"Total allocation requests: {stats.attempts}")
        print(f"Successful allocations: {stats.successes}")
        print(f"Failed allocations: {stats.failures}")
        print(f"Success rate: {stats.success_rate:.2f}%")
        print("====================================")

    def _reset(self, tokens: List[str]) -> None:
        self.system.reset_pool()
        print("Memory simulator has been reset")

    # --------------------------------------------------------
    # Cache commands
    # --------------------------------------------------------

    def _cache(self, tokens: List[str]) -> None:
        if len(tokens) < 5:
            print("Usage: cache <l1_size> <l1_block> <l2_size> <l2_block>")
            print("Example: cache 1024 32 8192 64")
            return
        try:
            l1, l1b, l2, l2b = (_parse_size(t) for t in tokens[1:5])
        except ValueError:
            print("Error: Invalid cache geometry format")
            return

        err = self.init_cache(l1, l1b, l2, l2b)
        if err is not None:
            print(f"Error initializing cache hierarchy: {err.message}")

    def init_cache(self, l1: int, l1b: int, l2: int, l2b: int) -> Optional[ConfigError]:
        """hierarchy를 만들고 레벨별 geometry를 출력한다(기본 cache 로딩에도 쓰임)."""
        err = self.system.init_cache(l1, l1b, l2, l2b)
        if err is not None:
            return err

        print("Initializing L1 Cache:")
        _print_level_created(self.system.caches.l1)
        print("Initializing L2 Cache:")
        _print_level_created(self.system.caches.l2)
        print("Cache hierarchy successfully initialized")
        return None

    def _access(self, tokens: List[str]) -> None:
        if len(tokens) < 2:
            print("Usage: access <address>")
            print("Example: access 0x40")
            return
        try:
            address = parse_address(tokens[1])
        except ValueError:
            print("Error: Invalid address format")
            return

        res = self.system.access(address)
        if isinstance(res, CacheError):
            print(f"Error: {res.message}")
            return
        print(f"0x{address:x}: {res.value}")

    def _cache_stats(self, tokens: List[str]) -> None:
        caches = self.system.caches
        if not caches.is_initialized:
            print(CacheError.NOT_INITIALIZED.message)
            return

        print("\n--- Cache Performance Statistics ---")
        _print_level_metrics("L1 Cache", caches.l1)
        print("")
        _print_level_metrics("L2 Cache", caches.l2)

        combined = caches.combined_hit_ratio()
        if combined is not None:
            print("\nOverall Cache Performance:")
            print(f"  Combined hit ratio: {combined:.2f}%")
        print("-----------------------------------")

    def _flush(self, tokens: List[str]) -> None:
        err = self.system.flush_cache()
        if err is not None:
            print(err.message)
            return
        print("Flushing all caches...")
        for name in ("L1", "L2"):
            print(f"{name} Cache flushed")

    def _cache_reset(self, tokens: List[str]) -> None:
        err = self.system.reset_cache_stats()
        if err is not None:
            print(err.message)
            return
        print("Cache statistics reset")

    # --------------------------------------------------------
    # Misc
    # --------------------------------------------------------

    def _help(self, tokens: List[str]) -> None:
        print(HELP)

    def _exit(self, tokens: List[str]) -> None:
        print("Goodbye!")
        self.is_running = False
