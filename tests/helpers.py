import io
import json
from unittest.mock import MagicMock

from PIL import Image


def make_image(width=400, height=300, fmt="JPEG", mode="RGB", color=(200, 80, 40)):
    """Encoded solid-color image bytes."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def chat_response(content, prompt_tokens=1000, completion_tokens=200):
    """Mimic an openai ChatCompletion with one choice."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage.prompt_tokens = prompt_tokens
    response.usage.completion_tokens = completion_tokens
    return response


def crop_reply(x=10, y=20, width=200, height=150, title="Rule of thirds"):
    return json.dumps(
        {
            "analysis": {"title": title, "effection": "Subject moves to a third line."},
            "crop_params": {"x": x, "y": y, "width": width, "height": height},
        }
    )
