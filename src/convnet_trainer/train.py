"""Training entrypoint for convnet_trainer.

Usage:
    convnet-train                                   # defaults (MNIST)
    convnet-train training.epochs=5                 # override epochs
    convnet-train training.batch_size=128           # override batch size
    convnet-train data.train_size=5000 trainer.accelerator=cpu
"""

import sys
from pathlib import Path
from typing import Any

import hydra
import lightning as L
from loguru import logger
from omegaconf import DictConfig, OmegaConf

# CRITICAL: import modules with @register decorators BEFORE Hydra parses config
import convnet_trainer.data  # noqa: F401
import convnet_trainer.models  # noqa: F401
import convnet_trainer.presentation  # noqa: F401
from convnet_trainer.callbacks.model_info import ModelInfoCallback
from convnet_trainer.config import TrainingConfig
from convnet_trainer.data.provider import DatasetProvider
from convnet_trainer.evaluation import evaluate, show_predictions
from convnet_trainer.models.convnet import ConvClassificationModel
from convnet_trainer.presentation.base import PresentationAdapter
from convnet_trainer.schemas.events import EvaluationResult
from convnet_trainer.trainer import train


def run_training(
    cfg: DictConfig,
    provider: DatasetProvider,
    presenter: PresentationAdapter,
) -> EvaluationResult:
    """Load data, build the model, train, evaluate on the test split, save."""
    presenter.log_status("Loading data...")
    provider.load()

    presenter.log_status("Creating model...")
    model: ConvClassificationModel = hydra.utils.instantiate(cfg.model)

    training_options: dict[str, Any] = OmegaConf.to_container(cfg.training, resolve=True)  # type: ignore[assignment]
    training_options["epochs"] = presenter.get_train_epochs()
    training_cfg = TrainingConfig(**training_options)

    preview_examples = int(cfg.get("preview_examples", 100))

    def preview(event_type: str, index: int, logs: dict[str, float]) -> None:
        show_predictions(model, provider, presenter, num_examples=preview_examples)

    presenter.log_status("Starting model training...")
    val_acc = train(
        model,
        training_cfg,
        provider.get_train_data(),
        on_iteration=preview,
        presenter=presenter,
        callbacks=[ModelInfoCallback()],
        **dict(cfg.get("trainer") or {}),
    )

    test_result = evaluate(model, provider.get_test_data(), batch_size=training_cfg.batch_size)
    val_text = f"{val_acc * 100:.1f}%" if val_acc is not None else "n/a"
    presenter.log_status(
        f"Final validation accuracy: {val_text}; "
        f"Final test accuracy: {test_result.test_accuracy * 100:.1f}%"
    )

    model.save(Path(cfg.output_dir) / "model.pt")
    return test_result


def launch(cfg: DictConfig) -> None:
    """Configure logging, build the provider and presenter, and wire the train button."""
    # Setup logging
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    # Seed everything for reproducibility
    L.seed_everything(cfg.get("seed", 42), workers=True)

    provider: DatasetProvider = hydra.utils.instantiate(cfg.data)
    presenter: PresentationAdapter = hydra.utils.instantiate(cfg.presentation)

    presenter.set_train_button_callback(lambda: run_training(cfg, provider, presenter))
    try:
        presenter.click_train()
    finally:
        presenter.close()


@hydra.main(version_base=None, config_path="conf", config_name="train_mnist")
def main(cfg: DictConfig) -> None:
    """Run training with the given Hydra config."""
    launch(cfg)


if __name__ == "__main__":
    main()
