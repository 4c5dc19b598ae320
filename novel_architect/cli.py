import asyncio
import click
from pathlib import Path
from typing import Awaitable, Callable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import Config
from .generator import AssistMode, GeminiGenerator
from .models import Genre, Tone
from .session import ProjectSession
from .storage import JsonFileStore, ProjectStorage
from .tasks import Task
from .utils.logger import setup_logger

console = Console()


@click.group()
@click.option('--config', '-c', type=click.Path(), default='config.yaml',
              help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool):
    """Novel Architect - plan, draft and de-AI your web novel."""
    ctx.ensure_object(dict)

    config_path = Path(config)
    if config_path.exists():
        ctx.obj['config'] = Config.from_yaml(config_path)
    else:
        ctx.obj['config'] = Config()

    log_level = "DEBUG" if verbose else ctx.obj['config'].log_level
    logger = setup_logger(log_level)
    ctx.obj['logger'] = logger

    if config_path.exists():
        logger.debug(f"Config loaded from: {config_path}")


def _open_session(config: Config) -> ProjectSession:
    storage = ProjectStorage(JsonFileStore(config.storage.root), key=config.storage.key)
    return ProjectSession.load(GeminiGenerator(config.gemini), storage, config=config)


def _with_session(ctx: click.Context, action: Callable[[ProjectSession], Awaitable]):
    """Run an action against the stored project, saving pending changes afterwards."""
    config = ctx.obj['config']

    async def _main():
        session = _open_session(config)
        try:
            return await action(session)
        finally:
            session.close()

    return asyncio.run(_main())


def _check(ctx: click.Context, task: Task) -> Task:
    if task.error:
        ctx.obj['logger'].error(f"{task.kind.value} failed: {task.error}")
        raise click.ClickException(task.error)
    return task


@cli.command()
@click.option('--genre', '-g', default=Genre.XIANXIA.value, help='Genre (any text)')
@click.option('--tone', '-t', default=Tone.FACE_SLAPPING.value, help='Tone (any text)')
@click.pass_context
def idea(ctx: click.Context, genre: str, tone: str):
    """Generate a novel idea."""
    async def action(session: ProjectSession):
        _check(ctx, await session.generate_idea(genre, tone))
        _print_idea(session)

    _with_session(ctx, action)


@cli.command()
@click.option('--count', '-n', type=int, default=None, help='Number of chapters')
@click.pass_context
def outline(ctx: click.Context, count: int):
    """Generate a chapter outline from the current idea."""
    async def action(session: ProjectSession):
        _check(ctx, await session.generate_outline(count))
        _print_outline(session)

    _with_session(ctx, action)


@cli.command()
@click.option('--role', '-r', default='主角', help='Character role')
@click.option('--genre', '-g', default=Genre.XIANXIA.value, help='Genre (any text)')
@click.option('--use-outline/--no-outline', default=True,
              help='Design the character around the current outline')
@click.pass_context
def character(ctx: click.Context, role: str, genre: str, use_outline: bool):
    """Add a generated character to the project."""
    async def action(session: ProjectSession):
        _check(ctx, await session.generate_character(role, genre, use_outline))
        _print_characters(session)

    _with_session(ctx, action)


@cli.command()
@click.argument('source', type=click.File('r', encoding='utf-8'))
@click.option('--append', '-a', is_flag=True, help='Append instead of replacing the draft')
@click.pass_context
def write(ctx: click.Context, source, append: bool):
    """Set the draft text from SOURCE ('-' for stdin)."""
    text = source.read()

    async def action(session: ProjectSession):
        session.set_content(session.state.content + text if append else text)
        console.print(f"Draft is now {len(session.state.content)} chars")

    _with_session(ctx, action)


@cli.command()
@click.argument('mode', type=click.Choice([m.value for m in AssistMode]))
@click.pass_context
def assist(ctx: click.Context, mode: str):
    """Continue, polish or describe using the writing assistant."""
    async def action(session: ProjectSession):
        task = _check(ctx, await session.assist(AssistMode(mode)))
        console.print(Panel(task.result, title=f"assist: {mode}"))

    _with_session(ctx, action)


@cli.command()
@click.option('--review', is_flag=True, help='Walk through the suggestions interactively')
@click.pass_context
def analyze(ctx: click.Context, review: bool):
    """Check the draft for machine-like writing."""
    async def action(session: ProjectSession):
        task = _check(ctx, await session.analyze())
        _print_analysis(session, task)
        if review:
            _review(session)

    _with_session(ctx, action)


def _review(session: ProjectSession):
    for index, suggestion in session.suggestions.active():
        location, notice = session.jump_to(index)
        where = notice or f"offset {location.selection.start}-{location.selection.end}"
        body = f"[red]{escape(suggestion.original)}[/red]\n→ [green]{escape(suggestion.primary_suggestion)}[/green]"
        for n, alt in enumerate(suggestion.alternatives, 1):
            body += f"\n  {n}. {escape(alt)}"
        body += f"\n[dim]{escape(suggestion.reason)}[/dim]"
        console.print(Panel(body, title=f"#{index} ({where})"))

        choice = click.prompt(
            "[r]eplace, [a]lternative, [i]gnore, [s]kip, [q]uit",
            type=click.Choice(['r', 'a', 'i', 's', 'q']),
            default='s',
        )
        if choice == 'q':
            break
        if choice == 'i':
            session.ignore_suggestion(index)
            continue
        if choice == 'a':
            if not suggestion.alternatives:
                console.print("[yellow]No alternatives for this suggestion[/yellow]")
                continue
            n = click.prompt("Alternative", type=click.IntRange(1, len(suggestion.alternatives)))
            session.choose_replacement(index, suggestion.alternatives[n - 1])
        if choice in ('r', 'a'):
            notice = session.apply_suggestion(index)
            console.print(f"[yellow]{notice}[/yellow]" if notice else "[green]Replaced[/green]")


@cli.command()
@click.option('--category', help='Only show this ranking list')
@click.pass_context
def rankings(ctx: click.Context, category: str):
    """Fetch the current Qidian rankings."""
    async def action(session: ProjectSession):
        result = _check(ctx, await session.fetch_rankings()).result
        for cat in result.categories:
            if category and cat.name != category:
                continue
            table = Table(title=cat.name)
            for col in ("#", "书名", "作者", "类型", "热度"):
                table.add_column(col)
            for book in cat.books:
                table.add_row(str(book.rank), book.title, book.author, book.genre, book.heat)
            console.print(table)
        console.print(Panel(result.trend_analysis, title="趋势"))
        for source in result.sources:
            console.print(f"[dim]{source.title}: {source.uri}[/dim]")

    _with_session(ctx, action)


@cli.command()
@click.pass_context
def show(ctx: click.Context):
    """Show the stored project."""
    async def action(session: ProjectSession):
        _print_idea(session)
        _print_outline(session)
        _print_characters(session)
        console.print(f"Draft: {len(session.state.content)} chars")

    _with_session(ctx, action)


@cli.command()
@click.pass_context
def save(ctx: click.Context):
    """Save the project now."""
    async def action(session: ProjectSession):
        written = session.save()
        console.print("Saved" if written is not None else "[red]Save failed[/red]")

    _with_session(ctx, action)


@cli.command()
@click.confirmation_option(prompt='确定要清空所有数据吗？此操作无法撤销。')
@click.pass_context
def clear(ctx: click.Context):
    """Delete the stored project."""
    async def action(session: ProjectSession):
        session.clear()
        ctx.obj['logger'].success("Project reset")

    _with_session(ctx, action)


def _print_idea(session: ProjectSession):
    idea = session.state.idea
    if idea is None:
        console.print("[dim]No idea yet[/dim]")
        return
    console.print(Panel(
        f"核心爽点：{idea.hook}\n金手指：{idea.goldfinger}\n"
        f"主要矛盾：{idea.main_conflict}\n目标读者：{idea.target_audience}",
        title=idea.title,
    ))


def _print_outline(session: ProjectSession):
    if not session.state.outline:
        return
    table = Table(title="大纲")
    for col in ("章", "标题", "节奏", "摘要", "关键事件"):
        table.add_column(col)
    for ch in session.state.outline:
        table.add_row(str(ch.number), ch.title, ch.pacing, ch.summary, ch.key_event)
    console.print(table)


def _print_characters(session: ProjectSession):
    if not session.state.characters:
        return
    table = Table(title="角色")
    for col in ("名字", "定位", "原型", "性格", "金手指"):
        table.add_column(col)
    for c in session.state.characters:
        table.add_row(c.name, c.role, c.archetype, c.personality, c.cheat_ability or "")
    console.print(table)


def _print_analysis(session: ProjectSession, task: Task):
    result = task.result
    console.print(Panel(
        f"AI味评分：{result.score}/100  {result.verdict}\n"
        f"人工特征：{'、'.join(result.human_traits) or '无'}\n"
        f"AI特征：{'、'.join(result.ai_traits) or '无'}",
        title="朱雀检测",
    ))
    for index, suggestion in session.suggestions.active():
        console.print(f"#{index} {suggestion.original} → {suggestion.primary_suggestion}")


def main():
    cli()


if __name__ == '__main__':
    main()
