"""Minimal demonstration of the streaming ask API."""

from ask_core import ask

if __name__ == "__main__":
    question = "今天上海的天气如何？顺便算一下 (18+26)/2"
    print("User:", question)
    print("Agent: ", end="", flush=True)
    for increment in ask(question, "demo-session"):
        print(increment.delta, end="", flush=True)
    print()
