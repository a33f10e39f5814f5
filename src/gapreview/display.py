"""终端显示模块

RichSessionCallback 将会话通知渲染到终端；
render_results_table 输出审阅阶段的结果表。
"""

from rich.console import Console
from rich.table import Table
from rich.text import Text

from gapreview.models import Complexity, GapResult, ItemStatus
from gapreview.workflow import GapWorkflow


class Icons:
    """简洁图标"""

    SUCCESS = "✓"
    ERROR = "✗"
    GAP = "●"
    ARROW = "→"


_COMPLEXITY_STYLES = {
    Complexity.LOW: "green",
    Complexity.MEDIUM: "yellow",
    Complexity.HIGH: "red",
    Complexity.CRITICAL: "bold red",
}

_STATUS_LABELS = {
    ItemStatus.PENDING: ("待选择", "dim"),
    ItemStatus.QUEUED: ("排队中", "cyan"),
    ItemStatus.ANALYZING: ("分析中", "cyan"),
    ItemStatus.SKIPPED: ("已跳过", "dim"),
    ItemStatus.NO_GAP: ("无差距", "green"),
    ItemStatus.GAP_FOUND: ("存在差距", "yellow"),
}


class RichSessionCallback:
    """基于 rich 的会话输出

    Attributes:
        console: rich 控制台
        verbose: 是否显示后端日志行
    """

    def __init__(self, console: Console | None = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose
        self._total = 0

    async def on_session_started(self, item_ids: list[int]) -> None:
        self._total = len(item_ids)
        self.console.print(f"[bold]分析 {self._total} 个需求[/bold] {Icons.ARROW} {item_ids}")

    async def on_item_started(self, item_id: int) -> None:
        if self.verbose:
            self.console.print(f"[dim]  #{item_id} 分析中...[/dim]")

    async def on_result_applied(self, result: GapResult) -> None:
        if result.has_gap:
            style = _COMPLEXITY_STYLES.get(result.complexity, "yellow")
            line = Text(f"  {Icons.GAP} #{result.id} ", style=style)
            line.append(f"[{result.complexity.value}] ", style=style)
        else:
            line = Text(f"  {Icons.SUCCESS} #{result.id} ", style="green")
            line.append("[无差距] ", style="green")
        line.append(_truncate(result.requirement_text, 60))
        self.console.print(line)

    async def on_log_line(self, text: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]  {text}[/dim]")

    async def on_progress(self, done: int, total: int) -> None:
        if self.verbose and done:
            self.console.print(f"[dim]  进度 {done}/{total}[/dim]")

    async def on_session_complete(self, actionable_count: int, no_gap_count: int) -> None:
        self.console.print(
            f"[green]{Icons.SUCCESS} 分析完成: {actionable_count} 个差距 / {no_gap_count} 个已满足[/green]"
        )

    async def on_session_failed(self, message: str) -> None:
        self.console.print(f"[red]{Icons.ERROR} 分析失败: {message}[/red]")


def render_results_table(workflow: GapWorkflow) -> Table:
    """构建审阅结果表

    Args:
        workflow: 工作流实例

    Returns:
        rich Table
    """
    table = Table(title=f"差距分析结果（已选 {workflow.selected_count} 项）")
    table.add_column("", width=3)
    table.add_column("#", justify="right")
    table.add_column("需求")
    table.add_column("状态")
    table.add_column("复杂度", justify="center")
    table.add_column("差距")
    table.add_column("工作量")

    for item in workflow.items:
        result = workflow.store.get(item.id)
        label, style = _STATUS_LABELS[item.status]
        mark = "—" if item.disabled else ("[x]" if item.checked else "[ ]")
        if result is not None and result.has_gap:
            complexity = Text(result.complexity.value, style=_COMPLEXITY_STYLES.get(result.complexity, ""))
            gap_text = _truncate(result.gap_description, 50)
            effort = result.estimated_effort or "—"
        else:
            complexity = Text("—", style="dim")
            gap_text = "—"
            effort = "—"
        table.add_row(
            Text(mark),
            str(item.id),
            _truncate(item.requirement_text, 50),
            Text(label, style=style),
            complexity,
            gap_text,
            effort,
        )
    return table


def _truncate(text: str, limit: int) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else text[: limit - 3] + "..."
