"""GapReview CLI 入口

提供命令行操作接口：对需求列表发起差距分析、回放 SSE 抓包。
"""

import asyncio
import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from gapreview.core.config import GapReviewSettings, get_settings
from gapreview.core.exceptions import GapReviewError

app = typer.Typer(
    name="gapreview",
    help="GapReview - 需求差距分析流式客户端",
    add_completion=False,
)
console = Console()

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def _configure_logging(verbose: bool, default_level: str) -> None:
    """重新配置 loguru 输出（只输出到 stderr）"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else default_level.upper(), format=_LOG_FORMAT)


def _parse_ids(value: str | None) -> list[int] | None:
    """解析逗号分隔的 1-based 条目 id"""
    if not value:
        return None
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise typer.BadParameter(f"无效的条目 id 列表: {value}")


def load_requirements_file(path: Path) -> list[str]:
    """读取需求文件（每行一个需求，忽略空行和 # 注释）"""
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


@app.command()
def analyze(
    requirements_file: Path = typer.Argument(..., help="需求文件（每行一个需求）"),
    server: str = typer.Option(None, "--server", "-s", help="后端地址（默认取自配置）"),
    only: str = typer.Option(None, "--only", "-o", help="只分析指定条目（1-based，逗号分隔，如 1,3,5）"),
    include_skipped: bool = typer.Option(
        False, "--include-skipped", help="首次分析完成后继续分析被跳过的条目"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON 格式输出"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="详细模式：显示后端日志与 DEBUG 日志"),
):
    """对需求列表发起流式差距分析"""
    from gapreview.client import GapAnalysisClient
    from gapreview.display import RichSessionCallback, render_results_table
    from gapreview.workflow import GapWorkflow

    settings = get_settings()
    if server:
        settings = GapReviewSettings(server_url=server)
    _configure_logging(verbose, settings.log_level)

    if not requirements_file.exists():
        console.print(f"[red]错误: 文件不存在: {requirements_file}[/red]")
        raise typer.Exit(1)
    texts = load_requirements_file(requirements_file)
    if not texts:
        console.print("[yellow]警告: 需求文件为空[/yellow]")
        raise typer.Exit(0)
    only_ids = _parse_ids(only)

    async def run_analyze() -> GapWorkflow:
        callback = None if json_output else RichSessionCallback(console, verbose=verbose)
        async with GapAnalysisClient(settings=settings) as client:
            workflow = GapWorkflow(client=client, callback=callback, settings=settings)
            workflow.load_requirements(texts)
            if only_ids:
                workflow.select_all(False)
                for item_id in only_ids:
                    workflow.set_checked(item_id, True)
            await workflow.start_analysis()
            if include_skipped and workflow.skipped_indices():
                await workflow.analyze_skipped()
            return workflow

    try:
        workflow = asyncio.run(run_analyze())
    except GapReviewError as e:
        if json_output:
            print(json.dumps({"error": str(e), "type": type(e).__name__}, ensure_ascii=False))
        else:
            console.print(f"[red]错误: {e}[/red]")
        raise typer.Exit(1)

    actionable_count, no_gap_count = workflow.store.count_by_outcome()
    if json_output:
        output = {
            "phase": workflow.phase.value,
            "actionableCount": actionable_count,
            "noGapCount": no_gap_count,
            "results": [r.model_dump(mode="json") for r in workflow.store],
            "selectedForDispatch": [r.id for r in workflow.selected_for_dispatch()],
            "skipped": [index + 1 for index in workflow.skipped_indices()],
        }
        print(json.dumps(output, ensure_ascii=False, indent=2))
        return

    console.print(render_results_table(workflow))
    skipped = workflow.skipped_indices()
    if skipped:
        console.print(f"[dim]已跳过 {len(skipped)} 个需求，可使用 --include-skipped 补充分析[/dim]")
    if workflow.can_dispatch:
        console.print(f"[bold]可派发 {workflow.selected_count} 个差距[/bold]")


@app.command()
def replay(
    capture_file: Path = typer.Argument(..., help="SSE 抓包文件（原始响应体）"),
):
    """离线回放 SSE 抓包，列出解码后的事件"""
    from gapreview.stream import decode_event, decode_frames

    if not capture_file.exists():
        console.print(f"[red]错误: 文件不存在: {capture_file}[/red]")
        raise typer.Exit(1)

    try:
        frames = decode_frames([capture_file.read_bytes()])
        table = Table(title=f"{capture_file.name}: {len(frames)} 个事件")
        table.add_column("#", justify="right")
        table.add_column("事件")
        table.add_column("负载")
        for position, frame in enumerate(frames, start=1):
            event = decode_event(frame)
            name = frame.event_type if event is None else event.event_type.value
            payload = frame.payload if len(frame.payload) <= 80 else frame.payload[:77] + "..."
            table.add_row(str(position), name if event is not None else f"[dim]{name}[/dim]", payload)
    except GapReviewError as e:
        console.print(f"[red]错误: {e}[/red]")
        raise typer.Exit(1)

    console.print(table)


if __name__ == "__main__":
    app()
