from concurrent.futures import ProcessPoolExecutor, as_completed

import psutil


def default_workers():
    return psutil.cpu_count(logical=False) or psutil.cpu_count() or 1


def map_regions(task, paths, workers=None, initializer=None, initargs=()):
    """
    Run task(path) for every path in a process pool and yield one outcome per path.

    A task that dies with an exception becomes an error outcome for its own
    file; the other tasks keep running.
    """
    workers = workers or default_workers()
    with ProcessPoolExecutor(max_workers=workers, initializer=initializer, initargs=initargs) as executor:
        futures = {executor.submit(task, path): path for path in paths}
        for future in as_completed(futures):
            path = futures[future]
            try:
                yield future.result()
            except Exception as e:
                yield {
                    "status": "error",
                    "file": path,
                    "kind": "worker",
                    "message": f"{e.__class__.__name__}: {e}",
                }
