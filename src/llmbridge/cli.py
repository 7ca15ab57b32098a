from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional
import typer

from .bootstrap import build_app
from .core.errors import ProviderError
from .images import load_image

app = typer.Typer(add_completion=False)

HELP = "Commands: /help, /models, /model <name>, /image <path>, /history, /clear, /exit, /quit"


@app.callback(invoke_without_command=True)
def chat(
    config: Path = Path("config/default.yaml"),
    target: Optional[str] = typer.Option(None, help="ollama | lmstudio | claude | openai"),
    host: Optional[str] = None,
    port: Optional[int] = None,
    model: Optional[str] = None,
    log_level: str = typer.Option("WARNING", help="Python logging level"),
):
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    ctx = build_app(config, overrides={"target": target, "host": host, "port": port, "model": model})
    bridge = ctx["bridge"]
    cfg = ctx["cfg"]
    current_model = ctx["model"]
    for w in ctx["warnings"]:
        print(f"[warn] {w}")

    use_stream = bool((cfg.get("runtime") or {}).get("stream", False))
    pending_image: Optional[str] = None

    print(f"llmbridge → {bridge.target.value} @ {bridge.base_url} ({current_model}). Type /help for commands.")
    while True:
        try:
            user_input = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            bridge.close()
            return

        if not user_input:
            continue

        if user_input in ("/exit", "/quit"):
            print("Bye.")
            bridge.close()
            return

        if user_input == "/help":
            print(HELP)
            continue

        if user_input == "/models":
            try:
                for name in bridge.list_models():
                    print(("* " if name == current_model else "  ") + name)
            except ProviderError as e:
                print(f"[error] {e}")
            continue

        if user_input.startswith("/model "):
            current_model = user_input.split(" ", 1)[1].strip()
            print(f"model: {current_model}")
            continue

        if user_input.startswith("/image "):
            try:
                pending_image = load_image(user_input.split(" ", 1)[1].strip())
                print("[image attached to next message]")
            except FileNotFoundError as e:
                print(f"[error] {e}")
            continue

        if user_input == "/history":
            for m in bridge.messages:
                print(f"{m.role}: {m.content}")
            continue

        if user_input == "/clear":
            bridge.clear_messages()
            print("[history cleared]")
            continue

        # Normal turn
        image, pending_image = pending_image, None
        try:
            if use_stream:
                gen = bridge.send_message_stream(user_input, image=image, model=current_model)
                try:
                    for piece in gen:
                        print(piece, end="", flush=True)
                    print("")
                except KeyboardInterrupt:
                    # closing the stream cancels and keeps the partial reply
                    gen.close()
                    print("\n[stream interrupted]")
            else:
                try:
                    reply = bridge.send_message(user_input, image=image, model=current_model)
                    print(reply.content)
                except KeyboardInterrupt:
                    bridge.cancel_generation()
                    print("\n[generation cancelled]")
        except ProviderError as e:
            print(f"\n[error] {e}")
