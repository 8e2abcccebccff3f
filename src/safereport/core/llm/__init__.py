from .dependency import ChatModelFactory, build_chat_model, get_chat_model_factory

__all__ = ["ChatModelFactory", "build_chat_model", "get_chat_model_factory"]
