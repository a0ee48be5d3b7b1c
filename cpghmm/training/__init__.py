"""Training corpus construction and Baum-Welch orchestration."""

from cpghmm.training.corpus import (
    TrainingCorpus,
    build_training_corpus,
    corpus_from_file,
    save_corpus,
    load_corpus,
)
from cpghmm.training.orchestrator import (
    Trainer,
    BaumWelchTrainer,
    train_model,
    run_training,
)

__all__ = [
    'TrainingCorpus',
    'build_training_corpus',
    'corpus_from_file',
    'save_corpus',
    'load_corpus',
    'Trainer',
    'BaumWelchTrainer',
    'train_model',
    'run_training',
]
