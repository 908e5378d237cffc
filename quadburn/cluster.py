# Copyright (c) 2026 QuadBurn developers
#
# This file is part of the QuadBurn project.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""This module defines the clusters running burn tasks."""

from multiprocessing.pool import ThreadPool
from typing import Any, Callable, Dict, List, Optional


class ClusterGenerator:
    def __new__(cls, name: str, nb_workers: int = 2) -> "AbstractCluster":  # type: ignore
        """
        Factory method to create different types of clusters based on the name argument.
        - If 'basic' is provided, a BasicCluster is instantiated.
        - Otherwise, a ThreadCluster is created with the given number of workers.
        """
        if name == "basic":
            cluster: AbstractCluster = BasicCluster()
        else:
            cluster = ThreadCluster(conf={"nb_workers": nb_workers})
        return cluster


class AbstractCluster:
    def __init__(self) -> None:
        """
        Base class for clusters. Initializes the pool attribute.
        Meant to be subclassed and extended.
        """
        self.pool: Optional[ThreadPool] = None

    def __enter__(self) -> "AbstractCluster":
        """Context manager entry point, returning the cluster instance."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point, ensures the cluster is properly closed."""
        self.close()

    def close(self) -> None:
        """Method to clean up resources. To be implemented by subclasses."""
        raise NotImplementedError("This method should be implemented by subclasses.")

    def launch_task(
        self, fun: Callable[..., Any], args: Optional[List[Any]] = None, kwargs: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Method to launch a task. This should be implemented by subclasses.
        :param fun: The function to run.
        :param args: Positional arguments for the function.
        :param kwargs: Keyword arguments for the function.
        """
        raise NotImplementedError("This method should be implemented by subclasses.")

    def get_res(self, future: Any) -> Any:
        """
        Retrieve the result from a launched task. Meant to be subclassed.
        :param future: The future object representing the result of an asynchronous task.
        """
        return future


class BasicCluster(AbstractCluster):
    def close(self) -> None:
        """Nothing to clean up, tasks already ran."""

    def launch_task(
        self, fun: Callable[..., Any], args: Optional[List[Any]] = None, kwargs: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Launches a task synchronously in a basic cluster (no parallelism).
        """
        if args is None:
            args = []
        if kwargs is None:
            kwargs = {}
        return fun(*args, **kwargs)


class ThreadCluster(AbstractCluster):
    def __init__(self, conf: Optional[Dict[str, Any]] = None) -> None:
        """
        Initializes a cluster of threads, sharing the memory of the calling process.
        :param conf: Configuration dictionary, which may contain the number of workers.
        """
        super().__init__()
        nb_workers = 1
        if conf is not None:
            nb_workers = conf.get("nb_workers", 1)
        if nb_workers < 1:
            raise ValueError(f"Number of workers must be strictly positive, got {nb_workers}.")
        self.nb_workers = nb_workers
        self.pool = ThreadPool(processes=nb_workers)

    def close(self) -> None:
        """Closes the pool, waiting for all launched tasks to finish."""
        if self.pool is not None:
            self.pool.close()
            self.pool.join()
            self.pool = None

    def launch_task(
        self, fun: Callable[..., Any], args: Optional[List[Any]] = None, kwargs: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Launches a task asynchronously in the thread pool.
        :param fun: The function to execute in parallel.
        :param args: The positional arguments for the function.
        :param kwargs: The keyword arguments for the function.

        :return: an asynchronous result (future object).
        """
        if args is None:
            args = []
        if kwargs is None:
            kwargs = {}
        if self.pool is None:
            raise RuntimeError("Cannot launch a task on a closed cluster.")
        return self.pool.apply_async(fun, args=args, kwds=kwargs)

    def get_res(self, future: Any) -> Any:
        """
        Retrieves the result of a completed asynchronous task, re-raising any exception of the task.
        """
        return future.get()
