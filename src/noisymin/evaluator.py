from inspect import signature
from typing import Callable
from noisymin.utils import Interval, NON_TUNABLE, supports_parameter, tunable_parameters
from noisymin.function_generators import fun_noisy as fun_generator
from noisymin.log_manager import LogManager
import optuna
import time
import numpy as np
import click
import matplotlib.pyplot as plt
from noisymin.optimizers import OPTIMIZERS  # Import the mapping

# Noisy problems may never stabilise, so evaluator runs are always capped
MAX_N_ITERATIONS = 2000

# log10 distances reported for diverged and exact results
LOG_ERROR_DIVERGED = 12.0
LOG_ERROR_EXACT = -12.0


def generate_test_functions(n_samples, n_dims, sigma, function_names=None, seed=None) -> list[tuple[Callable, np.ndarray]]:
    """Draw n_samples noisy problems per function family, as (function, optimum) pairs."""
    rng = np.random.default_rng(seed)
    function_names = function_names or fun_generator.FUNCTIONS_AND_OPTIMA.keys()
    problems = []
    for func_name in function_names:
        for _ in range(n_samples):
            problems.append(fun_generator.get_function_and_optimum(func_name, n_dims=n_dims, sigma=sigma,
                                                                   seed=int(rng.integers(2**32))))
    return problems


def run_minimizer(minimizer: Callable, fun, initial_guess, **kwargs):
    if supports_parameter(minimizer, 'max_n_iterations') and not kwargs.get('max_n_iterations'):
        kwargs['max_n_iterations'] = MAX_N_ITERATIONS
    return minimizer(fun=fun, initial_guess=initial_guess, **kwargs)


def log_distance(x: np.ndarray, optimum: np.ndarray) -> float:
    error = np.linalg.norm(x - optimum)
    if not np.isfinite(error):
        return LOG_ERROR_DIVERGED
    if error <= 10 ** LOG_ERROR_EXACT:
        return LOG_ERROR_EXACT
    return float(np.log10(error))


def multivariate_model_runner(minimizer: Callable, func_optima_tuples: list[tuple[Callable, np.ndarray]], **kwargs) -> tuple[float, float]:
    """
    Return the mean log10 distance between found and true optimum, and the time taken.

    Kwargs are hyperparameters of the minimizer (typically sampled by optuna).
    """
    time_start = time.time()
    log_errors = [log_distance(run_minimizer(minimizer, fun, np.zeros(len(optimum)), **kwargs).x, optimum)
                  for fun, optimum in func_optima_tuples]
    time_elapsed = time.time() - time_start
    print(f"Trial with params {kwargs} took {time_elapsed:.2f}s, mean log errors: {np.mean(log_errors):.3f}")
    return float(np.mean(log_errors)), time_elapsed


def univariate_model_runner(**kwargs):
    log_error, time_elapsed = multivariate_model_runner(**kwargs)
    return log_error + time_elapsed


def suggest_parameter(trial, name: str, base_type: type, meta):
    """Sample one annotated hyperparameter from an optuna trial."""
    if isinstance(meta, list):
        return trial.suggest_categorical(name, meta)
    if not isinstance(meta, Interval):
        raise ValueError(f"Unsupported metadata for {name}: {meta}")
    if base_type is int:
        step = None if meta.log else (meta.step or 1)
        return trial.suggest_int(name, meta.low, meta.high, step=step, log=meta.log)
    step = None if meta.log else (meta.step or (meta.high - meta.low) / 100)
    return trial.suggest_float(name, meta.low, meta.high, step=step, log=meta.log)


def make_optuna_objective(minimizer_to_test: Callable,
                          func_optima_tuples: list[tuple[Callable, np.ndarray]]) -> Callable:
    tunable = list(tunable_parameters(minimizer_to_test))
    tunable_names = {name for name, _, _ in tunable}
    fixed = {name: param.default for name, param in signature(minimizer_to_test).parameters.items()
             if name not in NON_TUNABLE and name not in tunable_names}

    # The term "trial" is magic used by Optuna
    def optuna_loss(trial):
        kwargs = dict(fixed)
        for name, base_type, meta in tunable:
            kwargs[name] = suggest_parameter(trial, name, base_type, meta)
        return univariate_model_runner(minimizer=minimizer_to_test, func_optima_tuples=func_optima_tuples, **kwargs)

    return optuna_loss


def tune_minimizer(minimizer_to_test: Callable, func_optima_tuples, n_trials: int = 50, seed: int | None = None):
    """
    Tune the minimizer's annotated hyperparameters with Optuna.

    :param minimizer_to_test: The minimize_* function to tune.
    :param func_optima_tuples: Noisy test problems to tune on.
    :param n_trials: Number of trials for tuning.
    :param seed: Seed of the optuna sampler.
    :return: The best parameters found by Optuna.
    """
    objective = make_optuna_objective(minimizer_to_test, func_optima_tuples=func_optima_tuples)
    study = optuna.create_study(direction="minimize", sampler=optuna.samplers.TPESampler(seed=seed))
    study.optimize(objective, n_trials=n_trials)
    return study.best_params


def benchmark_all_optimizers(n_tune_functions: int = 2, n_test_functions: int = 2,
                             n_tuning_trials: int = 10, n_dims: int = 2, sigma: float = 0.1,
                             save_path: str | None = None,
                             optimizer_names: list[str] | None = None,
                             seed: int | None = None):
    """
    Tune every optimizer on one set of noisy problems, score it on another, and plot the scores.

    Args:
        n_tune_functions: Number of problems per family used for tuning
        n_test_functions: Number of problems per family used for scoring
        n_tuning_trials: Number of optuna trials per optimizer
        n_dims: Number of dimensions of the problems
        sigma: Noise scale of the problems
        save_path: Path to save the plot (shown interactively if None)
        optimizer_names: Names from OPTIMIZERS to benchmark. If None, all of them.
        seed: Seed of the problem generator and of the tuner
    """
    rng = np.random.default_rng(seed)
    tune_functions = generate_test_functions(n_tune_functions, n_dims, sigma, seed=int(rng.integers(2**32)))
    test_functions = generate_test_functions(n_test_functions, n_dims, sigma, seed=int(rng.integers(2**32)))

    optimizer_names = list(OPTIMIZERS) if optimizer_names is None else optimizer_names
    for name in optimizer_names:
        if name not in OPTIMIZERS:
            print(f"Warning: Optimizer '{name}' not found, skipping...")
    optimizer_names = [name for name in optimizer_names if name in OPTIMIZERS]

    print(f"Benchmarking {len(optimizer_names)} optimizers on {len(test_functions)} problems "
          f"(tuned on {len(tune_functions)}, {n_tuning_trials} trials, {n_dims} dims, sigma={sigma})")
    print("-" * 60)

    results = []
    for i, name in enumerate(optimizer_names, 1):
        print(f"[{i}/{len(optimizer_names)}] {name}")
        best_params = tune_minimizer(OPTIMIZERS[name], tune_functions, n_trials=n_tuning_trials,
                                     seed=int(rng.integers(2**32)))
        log_error, time_elapsed = multivariate_model_runner(OPTIMIZERS[name], test_functions, **best_params)
        results.append({'name': name, 'log_error': log_error, 'time_elapsed': time_elapsed,
                        'best_params': best_params})

    if results:
        create_benchmark_plot(results, save_path=save_path)
        print("BENCHMARK SUMMARY")
        for result in sorted(results, key=lambda r: r['log_error']):
            print(f"{result['name']:25} | log_error: {result['log_error']:8.3f} | time: {result['time_elapsed']:6.2f}s")

    return results


def create_benchmark_plot(results, save_path: str | None = None):
    """Scatter accuracy against runtime, one labelled point per optimizer."""
    fig, ax = plt.subplots(figsize=(10, 7))
    ax.scatter([r['time_elapsed'] for r in results], [r['log_error'] for r in results], s=100, alpha=0.7)
    for r in results:
        ax.annotate(r['name'].replace('minimize_', ''), (r['time_elapsed'], r['log_error']),
                    xytext=(5, 5), textcoords='offset points', fontsize=9)

    ax.set_xlabel('Time Elapsed (seconds)')
    ax.set_ylabel('Mean log10 distance to optimum')
    ax.set_title('Noisy minimizers (lower and left is better)')
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    if save_path is not None:
        fig.savefig(save_path, dpi=200, bbox_inches='tight')
        print(f"Plot saved as '{save_path}'")
    else:
        plt.show()
    plt.close(fig)


@click.group()
def cli():
    """Run, tune and benchmark the noisy minimizers on generated test problems."""


@cli.command()
@click.option('--optimizer', type=click.Choice(list(OPTIMIZERS)), default='minimize_adam',
              help='Which optimizer to run')
@click.option('--function', 'func_name', type=click.Choice(list(fun_generator.FUNCTIONS_AND_OPTIMA)),
              default='parabola', help='Test function family')
@click.option('--n-dims', default=3, help='Number of dimensions of the test function')
@click.option('--sigma', default=0.1, help='Noise scale of the test function')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
@click.option('--verbose', is_flag=True, help='Log every iteration')
def run(optimizer, func_name, n_dims, sigma, seed, verbose):
    """Minimize a single noisy test function and report the result."""
    fun, optimum = fun_generator.get_function_and_optimum(func_name, n_dims=n_dims, sigma=sigma, seed=seed)
    minimizer = OPTIMIZERS[optimizer]
    kwargs = {}
    if supports_parameter(minimizer, 'log'):
        kwargs['log'] = LogManager()
        kwargs['log'].set_logging_on(verbose=verbose)
    result = run_minimizer(minimizer, fun, np.zeros(n_dims), **kwargs)
    click.echo(f"Found minimum:  f({', '.join(f'{xi:.4f}' for xi in result.x)}) = {result.f}")
    click.echo(f"True minimum:   ({', '.join(f'{xi:.4f}' for xi in optimum)})")
    click.echo(f"Distance:       {np.linalg.norm(result.x - optimum):.4g}")


@cli.command()
@click.option('--n-trials', default=50, help='Number of trials for hyperparameter tuning')
@click.option('--optimizer', type=click.Choice(list(OPTIMIZERS)), default='minimize_adam',
              help='Which optimizer to tune')
@click.option('--n-dims', default=2, help='Number of dimensions of the test functions')
@click.option('--sigma', default=0.1, help='Noise scale of the test functions')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
def tune(n_trials, optimizer, n_dims, sigma, seed):
    """Tune hyperparameters for a specific optimizer."""
    tune_functions = generate_test_functions(n_samples=2, n_dims=n_dims, sigma=sigma, seed=seed)
    best_params = tune_minimizer(OPTIMIZERS[optimizer], tune_functions, n_trials=n_trials, seed=seed)

    click.echo(f"Best parameters found for {optimizer}:")
    for param, value in best_params.items():
        click.echo(f"  {param}: {value}")


@cli.command()
def list_optimizers():
    """List all available optimizers and their tunable hyperparameters."""
    click.echo("Available optimizers:")
    click.echo("-" * 40)
    for i, name in enumerate(sorted(OPTIMIZERS), 1):
        tunable = ', '.join(param for param, _, _ in tunable_parameters(OPTIMIZERS[name]))
        click.echo(f"{i:2d}. {name:25} [{tunable}]")
    click.echo(f"\nTotal: {len(OPTIMIZERS)} optimizers")


@cli.command()
@click.option('--n-tune-functions', default=2, help='Number of problems per family used for tuning')
@click.option('--n-test-functions', default=2, help='Number of problems per family used for scoring')
@click.option('--n-tuning-trials', default=20, help='Number of trials for hyperparameter tuning')
@click.option('--save-path', default=None, help='Path to save the plot')
@click.option('--n-dims', default=2, help='Number of dimensions of the test functions')
@click.option('--sigma', default=0.1, help='Noise scale of the test functions')
@click.option('--seed', default=None, type=int, help='Random seed for reproducibility')
@click.option('--optimizers', multiple=True, type=click.Choice(list(OPTIMIZERS)),
              help='Specific optimizers to test (can specify multiple times). If not specified, test all optimizers.')
def benchmark(n_tune_functions, n_test_functions, n_tuning_trials, save_path, n_dims, sigma, seed, optimizers):
    """Benchmark optimizers and create a scatter plot."""
    benchmark_all_optimizers(n_tune_functions=n_tune_functions,
                             n_test_functions=n_test_functions,
                             n_tuning_trials=n_tuning_trials,
                             n_dims=n_dims,
                             sigma=sigma,
                             save_path=save_path,
                             seed=seed,
                             optimizer_names=list(optimizers) or None)


if __name__ == '__main__':
    cli()
