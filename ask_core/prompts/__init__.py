"""系统提示词加载工具。

优先读取配置项 system_prompt_file 指向的文本文件（相对路径以本目录为基准），
未配置时使用 system_prompt 配置值。
"""

from pathlib import Path

from ask_core.config.settings import Settings


PROMPTS_DIR = Path(__file__).resolve().parent


def load_system_prompt(cfg: Settings) -> str:
    """根据配置加载系统提示词文本。"""

    if cfg.system_prompt_file:
        path = Path(cfg.system_prompt_file).expanduser()
        if not path.is_absolute():
            path = PROMPTS_DIR / path
        return path.read_text(encoding="utf-8").strip()
    return cfg.system_prompt
